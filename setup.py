from setuptools import setup, find_packages

setup(
    name='niche-overlap-sdm',
    version='0.1.0',
    description='Predator/prey species distribution models and niche overlap under climate change',
    packages=find_packages(include=['niche_sdm', 'niche_sdm.*']),
    python_requires='>=3.11',
    install_requires=[
        'numpy',
        'pandas',
        'scipy',
        'statsmodels>=0.14',
        'scikit-learn',
        'xarray',
        'rioxarray',
        'rasterio',
        'geopandas',
        'shapely',
        'joblib',
        'tqdm',
        'typer',
        'pydantic>=2',
        'PyYAML',
        'typing_extensions',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'niche-sdm=niche_sdm.cli:app',
        ],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
)
