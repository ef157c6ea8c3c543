# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- STATE & CONFIG ---
    "pydantic>=2.0.0",
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",

    # --- REQUEST COLLABORATOR ---
    "httpx>=0.27.0",

    # --- TESTS---
    "pytest-asyncio>=0.23",
    "pytest"
]

setup(
    name="console-state",
    version="1.0.0",
    description="Reactive state core for the cluster management console",
    packages=find_packages(include=["console", "console.*"]),
    include_package_data=True,
    install_requires=install_requires,
    python_requires=">=3.10",
)
