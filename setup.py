from setuptools import setup, find_namespace_packages

setup(
    name="libris",
    version="0.1.0",
    packages=find_namespace_packages(include=['libris*', 'libris_cli*']),
    include_package_data=True,
    package_data={
        "libris.data": ["*.json"],
    },
    python_requires=">=3.9",
    install_requires=[
        "Click",
        "SQLAlchemy>=2.0",
        "pydantic>=2.0",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "libris=libris_cli.main:main",
        ],
    },
)
