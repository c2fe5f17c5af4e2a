from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="mfa-share",
    version="1.0.0",
    description="Assume AWS roles with MFA and store the temporary credentials in ~/.aws/credentials",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: System :: Systems Administration",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.8",
    install_requires=[
        "boto3>=1.26.0",
        "tabulate>=0.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "freezegun>=1.2",
        ],
    },
    entry_points={
        "console_scripts": [
            "mfa-share=mfa_share.cli:main",
        ],
    },
)
