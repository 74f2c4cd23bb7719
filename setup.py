from setuptools import setup, find_packages

setup(
    name="wdasign",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "rich",
        "python-dotenv",
        "toml",
        "rich-argparse",
        "asn1crypto",
        "mcp>=1.2,<2",
        "anyio",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "wdasign=wdasign.cli:main",
        ],
    },
)
