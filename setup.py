from setuptools import setup, find_packages

setup(
    name='dcmatrix',
    version='0.1',
    packages=find_packages(include=['dcmatrix', 'dcmatrix.*']),
    install_requires=[
        'numpy',
        'pandas>=1.5',
        'scipy',
        'statsmodels',
        'tqdm',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    author='dcmatrix developers',
    description='Distance covariance and distance correlation matrices between groups of variables',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.9',
)
