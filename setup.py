"""
Setup script for the Content Vault service
"""
from setuptools import setup, find_packages

setup(
    name="content_vault",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10,<3.14",
    install_requires=[
        "fastapi>=0.110,<0.137",
        "uvicorn[standard]>=0.27",
        "sqlalchemy>=2.0",
        "alembic>=1.13",
        "pydantic[email]>=2.5",
        "python-jose[cryptography]>=3.3",
        "bcrypt>=4.0",
        "stripe>=8.0",
        "requests>=2.31",
        "psycopg2-binary>=2.9",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "httpx>=0.25",
        ],
    },
)
