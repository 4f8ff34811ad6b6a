#!/usr/bin/env python3
"""remotedeploy CLI - Setup"""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

setup(
    name="remotedeploy",
    version="1.0.0",
    description="Deploy a containerized application to a remote server behind an HTTPS nginx proxy",
    author="remotedeploy Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"remotedeploy": ["stubs/nginx/*.j2"]},
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "remotedeploy=remotedeploy.main:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
