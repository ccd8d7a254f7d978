from setuptools import setup, find_packages
import os

VERSION = "0.1a0"


def get_long_description():
    with open(
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "README.md"),
        encoding="utf8",
    ) as fp:
        return fp.read()


setup(
    name="markovtext",
    description=(
        "Word-level Markov chain text generation, with a batched generation "
        "queue for typewriter-style displays"
    ),
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    license="Apache License, Version 2.0",
    version=VERSION,
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points="""
        [console_scripts]
        markovtext=markovtext.cli:cli
    """,
    install_requires=[
        "click",
        "click-default-group>=1.2.3",
        "httpx",
        "sqlite-utils>=3.37",
        "pydantic>=2.0",
        "pluggy",
        "python-ulid",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-httpx>=0.33.0",
            "pytest-asyncio",
            "mypy>=1.10.0",
            "black>=24.1.0",
            "ruff",
            "types-click",
        ]
    },
    python_requires=">=3.9",
)
