from setuptools import setup, find_packages

setup(
    name='gvs',
    version='0.1.0',
    description='Command line tool to manage multiple active Go versions',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.8',
    install_requires=[
        'requests',
        'pick',
        'PyYAML',
        'rich',
        'platformdirs',
    ],
    extras_require={
        'test': [
            'pytest<9.1',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'gvs=gvs.cli:main',
        ],
    },
)
