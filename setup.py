"""Setup script for genflow — ensures package discovery works with setuptools."""
from setuptools import setup, find_packages

# Explicit package discovery for reliable build (editable and wheel)
setup(
    packages=find_packages(where=".", include=("genflow", "genflow.*")),
    package_dir={"": "."},
)
