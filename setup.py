from setuptools import setup, find_namespace_packages


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()


setup(
    name="plotflow",
    version="0.1.0",
    description="Evenly spaced streamline placement in composable flow fields, for pen plotters",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["plotflow", "plotflow.*"]),
    install_requires=[
        "numpy",
        "scipy",
        "noise",
        "structlog",
        "tqdm",
    ],
    extras_require={
        "demo": ["matplotlib"],
        "test": ["pytest"],
    },
    python_requires=">=3.8",
)
