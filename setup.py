from setuptools import find_packages, setup

setup(
    name="testwatcher",
    version="0.1.0",
    description="Re-run a test command on file changes and colorize its output",
    author="Araray Velho",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click",
        "toml",
        "pyyaml",
        "rich",
        "watchdog",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "testwatcher=testwatcher.cli:main"
        ]
    },
)
