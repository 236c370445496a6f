from setuptools import setup, find_packages

setup(
    name="recjoin",
    version="0.1.0",
    packages=find_packages(include=["recjoin", "recjoin.*"]),
    install_requires=[
        "ffmpeg-python",
        "rich>=13.0.0",  # Explicit minimum version
        "psutil",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "recjoin=recjoin.__main__:main",
        ],
    },
    python_requires=">=3.8",
)
