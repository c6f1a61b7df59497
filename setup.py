#!/usr/bin/env python
"""Setup for aioonkyo module."""
from setuptools import setup


def readme():
    """Return README file as a string."""
    with open("README.rst", "r") as f:
        return f.read()


setup(
    name="aioonkyo",
    version="0.1.0",
    author="Mathieu Pasquet",
    license="LICENSE",
    packages=["aioonkyo"],
    scripts=[],
    description="asyncio API for controlling Onkyo and Integra Receivers",
    long_description=readme(),
    python_requires=">=3.8",
    install_requires=[
        "netifaces",
        "pyserial",
        "pyserial-asyncio-fast",
    ],
    extras_require={"test": ["pytest"]},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    include_package_data=True,
    zip_safe=True,
    entry_points={"console_scripts": ["onkyo_monitor = aioonkyo.tools:monitor",]},
)
