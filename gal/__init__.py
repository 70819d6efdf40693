"""
Gal: a small expression language which reduces whatever it can,
as soon as it can, and calls out to foreign code the moment the
arguments are ready.
"""
