from setuptools import setup, find_packages

setup(
    name="logistica",
    version="1.0.0",
    description="API multi-tenant de gestión logística",
    packages=find_packages(exclude=("tests", "tests.*", "migrations", "migrations.*")),
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "python-multipart",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        # passlib 1.7.4 no es compatible con bcrypt >= 4.1
        "bcrypt>=4.0,<4.1",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg",
        "alembic",
        "pydantic[email]>=2.0",
        "tenacity",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "aiosqlite",
            "httpx",
        ],
    },
)
