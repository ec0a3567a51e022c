from setuptools import setup, find_packages

setup(
    name="homeplanner-scheduling",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "sqlalchemy[asyncio]>=2.0",
        "aiosqlite",
        "pydantic>=2",
        "pydantic-settings",
        "python-dateutil",
        "python-jose[cryptography]",
        "python-json-logger",
        "prometheus-client",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
)
