from setuptools import setup, find_packages

setup(
    name="zkstate_package",
    version="0.1.0",
    description="A package to generate Bitcoin Scripts proving updates of Merkle state trees",
    url="https://github.com/yourusername/zkstate_package",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=["tx-engine"],
    extras_require={"test": ["pytest"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.11",
)
