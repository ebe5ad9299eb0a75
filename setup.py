"""Setup script for the project."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="yield-gap-decomposition",
    version="1.0.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Wheat yield gap decomposition into efficiency, resource and technology gaps",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/yield-gap-decomposition",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0.0", "httpx>=0.24.0"],
    },
    entry_points={
        "console_scripts": [
            "yield-gap=src.presentation.cli.main:main",
        ],
    },
)
