from setuptools import find_packages, setup

setup(
    name="ksefproxy",
    version="0.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2.6",
        "python-multipart",
        "cryptography",
        "requests",
        "click",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "ksefproxy=ksefproxy.cli:cli",
        ],
    },
)
