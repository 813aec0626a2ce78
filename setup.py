from setuptools import setup, find_packages


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="wdngraph",
    version="0.1.0",
    description="A water distribution network model engine with an EPANET INP codec.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.9",
    install_requires=[
        "networkx",
        "numpy",
        "pandas",
        "pyyaml",
        "shapely>=2.0",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["wdngraph=wdngraph.cli:main"]},
)
