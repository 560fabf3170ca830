from setuptools import setup, find_packages

# Find all packages in the current directory
packages = find_packages(exclude=['tests', 'tests.*'])

setup(
    name='oracle-python',
    version='0.1.0',
    description='A Python library for interacting with Oracle Database through the OCI client library',
    author='Microsoft Corporation',
    author_email='pysqldriver@microsoft.com',
    packages=packages,
    # Requires >= Python 3.10
    python_requires='>=3.10',
    # The OCI client library is loaded at runtime; no Python dependencies are required
    install_requires=[],
    extras_require={
        'arrow': ['pyarrow'],
        'test': ['pytest', 'pyarrow'],
    },
    classifiers=[
        'Operating System :: Microsoft :: Windows',
        'Operating System :: MacOS',
        'Operating System :: POSIX :: Linux',
    ],
    zip_safe=False,
)
