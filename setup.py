import re
from pathlib import Path
from setuptools import setup, find_packages


ROOT = Path(__file__).resolve().parent


def read_readme() -> str:
    readme_path = ROOT / "README.md"
    return readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""


def read_version() -> str:
    source = (ROOT / "cbcseal" / "main.py").read_text(encoding="utf-8")
    match = re.search(r'^\s*ENGINE_VERSION = "([^"]+)"', source, re.MULTILINE)
    if not match:
        raise RuntimeError("ENGINE_VERSION not found in cbcseal/main.py")
    return match.group(1)


setup(
    name="cbcseal",
    version=read_version(),
    packages=find_packages(include=["cbcseal", "cbcseal.*"]),
    install_requires=[
        "cryptography>=41.0.0",
    ],
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "cbcseal=cbcseal.main:main",
        ],
    },
    description="Passphrase-based AES-256-CBC envelopes with PBKDF2 key derivation",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
)
