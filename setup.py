"""
Setup script de dmgboy.

Uso:
    pip install -e .
    pip install -e ".[test]"
"""

from setuptools import find_packages, setup

setup(
    name="dmgboy",
    version="0.1.0",
    description="Emulador de Game Boy (DMG) sincronizado por ciclos",
    packages=find_packages(include=["dmgboy", "dmgboy.*"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "pygame-ce",
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "dmgboy=main:main",
        ],
    },
    zip_safe=False,
)
