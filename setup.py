"""
Packaging script for PyPI.
"""
import setuptools

setuptools.setup(
	name='gal-lang',
	version='0.1.0',
	packages=['gal', "gal.adapters", ],
	package_data={
		'gal': ["preamble.gal"],
	},
	entry_points={
		'console_scripts': ["gal = gal.cmdline:main"],
	},
	license='MIT',
	description='An opportunistically-evaluated expression language with user-defined notation and a foreign-call bridge',
	long_description=open('README.md').read(),
	long_description_content_type="text/markdown",
	classifiers=[
		"Programming Language :: Python :: 3.9",
		"License :: OSI Approved :: MIT License",
		"Operating System :: OS Independent",
		"Development Status :: 3 - Alpha",
		"Intended Audience :: Developers",
		"Topic :: Software Development :: Interpreters",
		"Environment :: Console",
    ],
	python_requires='>=3.9',
	install_requires=[
		"booze-tools>=0.6.2.1",
	]
)
