from setuptools import find_packages, setup

setup(
    name="openpool_dashboard",
    packages=find_packages(exclude=["openpool_dashboard_tests"]),
    install_requires=[
        "dagster",
        "dagster-webserver",
        "pandas",
        "pydantic>=2",
        "python-dotenv",
        "httpx"
    ],
    extras_require={"dev": ["pytest", "pytest-asyncio"]},
)
