from setuptools import find_packages, setup

setup(
    name="vault-kv",
    version="0.1.0",
    description="Caching client and search for HashiCorp Vault KV v2 secrets engines",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "cachetools>=5.0.0",
        "requests>=2.31.0",
    ],
    entry_points={
        "console_scripts": [
            "vault-kv=vault_kv.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
