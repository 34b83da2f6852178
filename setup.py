from setuptools import setup, find_packages

setup(
    name="cwd",
    version="0.1.0",
    packages=find_packages("src"),
    package_dir={"": "src"},
    install_requires=[
        "numpy>=1.21.0",
        "pandas>=1.3.0",
        "matplotlib>=3.4.0",
        "seaborn>=0.11.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    description="Cumulative water deficit and deficit event analysis",
    python_requires=">=3.8",
)
