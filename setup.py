#!/usr/bin/python3
# Setup file for refkind
# Copyright (C) 2026 The refkind authors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

import os

from setuptools import setup

with open(os.path.join(os.path.dirname(__file__), "refkind", "__init__.py")) as f:
    for line in f:
        if line.startswith("__version__ = "):
            version = ".".join(
                str(int(p)) for p in line.split("=", 1)[1].strip().strip("()").split(",")
            )
            break
    else:
        raise RuntimeError("unable to find __version__")

tests_require = ["pytest"]


setup(
    name="refkind",
    version=version,
    description="Classification and resolution of git references",
    keywords=["git", "vcs", "refs"],
    license="Apache-2.0 OR GPL-2.0-or-later",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Operating System :: POSIX",
        "Operating System :: Microsoft :: Windows",
        "Topic :: Software Development :: Version Control",
    ],
    python_requires=">=3.9",
    packages=["refkind"],
    package_data={"": ["py.typed"]},
    install_requires=[],
    extras_require={"dev": tests_require},
    entry_points={"console_scripts": ["refkind=refkind.cli:_main"]},
)
