#!/usr/bin/env python3
"""pgfleet - Setup"""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = [line for line in f.read().splitlines() if line and not line.startswith("#")]

setup(
    name="pgfleet",
    version="0.8.0",
    description="Control plane for PostgreSQL cluster fleets driven by ansible-playbook",
    author="pgfleet Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"pgfleet.server": ["public/*"]},
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24",
        ],
    },
    entry_points={
        "console_scripts": [
            "pgfleet=pgfleet.main:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
