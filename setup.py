from setuptools import setup, find_packages


setup(
    name='voxtools',
    version='0.1a',
    packages=find_packages(exclude=['tests', 'tests.*']),
    license='MIT',
    description='Resampling of volumetric images onto arbitrary voxel grids',
    python_requires='>=3.7',
    install_requires=['nibabel', 'numpy', 'scipy'],
    extras_require={'test': ['pytest']},
    entry_points={'console_scripts': ['voxtools=voxtools.__main__:main']},
)
