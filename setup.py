"""Setup script for rpi-usb-share."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the version from __version__.py
version_dict = {}
with open("rpi_usb_share/__version__.py") as f:
    exec(f.read(), version_dict)

VERSION = version_dict["__version__"]

# Read the long description from README
README = Path("README.md").read_text(encoding="utf-8")

setup(
    name="rpi-usb-share",
    version=VERSION,
    author="mrfenyx",
    description="Provision a Raspberry Pi Zero W as a USB mass-storage gadget shared over Samba",
    long_description=README,
    long_description_content_type="text/markdown",
    url="https://github.com/mrfenyx/RPi-Zero-W-WiFi-USB",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "loguru>=0.7.0",
        "psutil>=5.9.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-mock>=3.10.0",
            "ruff>=0.1.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rpi-usb-share=rpi_usb_share.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "Topic :: Utilities",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX :: Linux",
    ],
    keywords="raspberry-pi usb gadget mass-storage samba dwc2 provisioning",
    project_urls={
        "Bug Reports": "https://github.com/mrfenyx/RPi-Zero-W-WiFi-USB/issues",
        "Source": "https://github.com/mrfenyx/RPi-Zero-W-WiFi-USB",
    },
)
