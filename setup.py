from setuptools import setup, find_packages

setup(
    name='xcodecache',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'PyYAML',
        'urllib3',
        'packaging',
        'platformdirs',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'xcodecache=xcodecache.cli:main',
        ],
    },
)
