"""
Bridges to foreign runtimes. Each one serves whatever module prefix
it is registered under in a Linkage.
"""
