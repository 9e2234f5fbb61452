"""
Setup script for sfcknn package
"""

# Always prefer setuptools over distutils
from setuptools import setup, find_packages
from os import path

here = path.abspath(path.dirname(__file__))

# Get the long description from the relevant file
with open(path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

# Get the code version
version = {}
with open(path.join(here, "sfcknn/version.py")) as fp:
    exec(fp.read(), version)
__version__ = version['__version__']
# now we have a `__version__` variable

setup(
    name='sfcknn',
    version=__version__,
    description='Approximate k-nearest-neighbour search with multiple space-filling curve orders',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='MIT',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'Topic :: Database',
        'Topic :: Scientific/Engineering :: Information Analysis',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
    keywords='knn nearest-neighbor space-filling-curve similarity-search',
    packages=find_packages(include=['sfcknn*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.17',
        'scikit-learn>=0.24',  # BallTree for the exact baseline, check_random_state
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
)
