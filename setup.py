from setuptools import setup

setup(
    name = 'pyc1',
    version = '0.1.0',
    description = 'Approximate C1 spline bases on multi-patch geometries for Isogeometric Analysis',
    long_description = 'pyc1 constructs approximate C1 smooth spline bases on planar multi-patch\ngeometries and solves the biharmonic equation with them.',

    classifiers=[
        'Programming Language :: Python :: 3',
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Mathematics',
        'Topic :: Scientific/Engineering :: Physics',
    ],
    packages = ['pyc1'],

    install_requires = [
        'numpy>=1.11',
        'scipy',
        'networkx',
        'matplotlib',
        'meshio',
        'tqdm',
    ],
    extras_require = {
        'test': ['pytest'],
    },
)
