from pathlib import Path

from setuptools import setup, find_packages


def get_long_description():
    readme_path = Path(__file__).parent / "README.md"
    if readme_path.exists():
        return readme_path.read_text(encoding="utf-8")
    return "Online hover thrust estimation for multirotors"


setup(
    name="hover-thrust-estimator",
    version="1.0.0",
    description="Single-state Kalman filter estimating multirotor hover thrust online",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    packages=find_packages(where="python", exclude=["tests", "tests.*"]),
    package_dir={"": "python"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0.0", "pytest-cov>=4.0.0", "black", "flake8"],
        "viz": ["matplotlib>=3.4.0"],
    },
)
