"""Setup configuration for Modflow content moderation workflow."""

from setuptools import setup, find_packages

setup(
    name="modflow",
    version="0.0.1",
    description="An AI content moderation workflow for text and image submissions",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "openai>=1.40",
        "aiosqlite>=0.20",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "jsonschema>=4.0",
        "requests>=2.31",
        "Pillow>=10.0",
        "pillow-heif>=0.16",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "modflow=modflow.main:main",
        ],
    },
)
