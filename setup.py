from setuptools import setup, find_packages


setup(
    name="plank",
    version="0.1",
    packages=find_packages(exclude=["scripts"]),
    description="Pack files into a single .plank archive with optional compression, encryption and SHA-256 verification.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "plank=plank.cli:main",
        ]
    },
)
