from setuptools import setup, find_packages

setup(
    name="dirac",
    version="0.1.0",
    description="DIRAC — AI-powered terminal. Plain words in, confirmed shell commands out.",
    long_description="""DIRAC features:
- Shell commands on PATH run directly, with a persistent working directory
- Anything else is turned into one command by a local Ollama model
- Every suggested command is shown with an explanation and runs only after you confirm
- Failed commands get a diagnosis from the model; failed cd gets local hints
- 30 second bound on every external command, signal and timeout reporting
- Path completion, persistent history with auto-suggest, plugin registry
""",
    packages=find_packages(exclude=("tests", "tests.*")),
    include_package_data=True,
    install_requires=[
        "rich>=13.7.0",
        "click>=8.1.0",
        "prompt_toolkit>=3.0.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "dirac=dirac.CLI:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
    ],
)
