# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

import os
import re

from setuptools import find_packages, setup


def read_version():
    init_path = os.path.join(os.path.dirname(__file__), "cachegraph", "__init__.py")
    with open(init_path, encoding="utf-8") as f:
        match = re.search(r'^__version__ = "([^"]+)"', f.read(), re.MULTILINE)
    if match is None:
        raise RuntimeError("Unable to find __version__ in cachegraph/__init__.py")
    return match.group(1)


setup(
    name="cachegraph",
    version=read_version(),
    description="Load and run cached graph models with shared initializer resources",
    author="Wahyu Ardiansyah",
    license="Apache-2.0",
    packages=find_packages(include=["cachegraph", "cachegraph.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "aiofiles>=23.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
            "hypothesis>=6.80",
        ],
    },
    entry_points={
        "console_scripts": [
            "cachegraph=cachegraph.cli:main",
        ],
    },
)
