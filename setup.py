from setuptools import setup, find_packages

setup(
    name="erg_soundtrack",
    version="1.0.0",
    packages=find_packages(include=["erg_soundtrack", "erg_soundtrack.*"]),
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.24.0",
        "fitparse>=1.2.0",
        "lxml>=4.9.0",
        "requests>=2.28.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "erg-soundtrack=erg_soundtrack.cli:main",
        ],
    },
    python_requires=">=3.8",
)
