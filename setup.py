from setuptools import setup, find_packages

setup(
    name="solrange",
    version="0.1.0",
    description="solrange: value-range abstract interpretation for smart contracts",
    packages=find_packages(include=["solrange", "solrange.*"]),
    python_requires=">=3.10",
    install_requires=[
        "z3-solver>=4.12.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
)
