from setuptools import setup, find_packages

setup(
    name="infratrack",
    version="1.0.0",
    packages=find_packages(),
    install_requires=[
        "pandas>=1.4.0",
        "numpy>=1.20.0",
        "pyproj>=3.3.0",
        "ezdxf>=1.1.0",
        "lxml>=4.9.0",
        "openpyxl>=3.0.0",
        "beautifulsoup4>=4.11.1",
        "html5lib>=1.1",
        "geopandas>=0.12.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "infratrack-cli=infratrack.cli.main:main",
        ],
    },
    python_requires=">=3.8",
    author="InfraTrack",
    description="Import and topology audit tool for water and sewage utility networks",
)
