# setup.py
"""Setup script for the media stream checksum tool."""

import os

from setuptools import setup, find_packages

setup(
    name="media-checksum",
    version="1.0.0",
    description="Stable checksums of the audio and video streams inside media containers",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Media Checksum Team",
    packages=find_packages(),
    python_requires=">=3.8",
    install_requires=[
        "tqdm>=4.50.0",
        "mmh3>=4.1.0",
        "xxhash>=3.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
            "pytest-cov>=2.10.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "media-checksum=media_checksum.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Multimedia :: Video",
        "Topic :: System :: Archiving",
    ],
)
