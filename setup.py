from setuptools import setup, find_packages

setup(
    name='lmsr-market-engine',
    version='0.1.0',
    packages=find_packages(include=['lmsr_market', 'lmsr_market.*']),
    install_requires=[
        'mpmath',
        'numpy',
        'python-dotenv',
        'typing_extensions',
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='Deterministic LMSR automated market maker for multi-outcome prediction markets, including market lifecycle, trading, resolution and collateral settlement.',
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.11',
)
