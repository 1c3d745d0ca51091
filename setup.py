from setuptools import setup, find_packages

setup(
    name="pr-review-bot",
    version="1.0.0",
    description="GitHub App that reviews pull requests when they are opened",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"review_bot": ["rules/*.yaml"]},
    python_requires=">=3.10",
    install_requires=[
        "PyGithub>=2.1.0",
        "PyJWT[crypto]>=2.8.0",
        "fastapi>=0.115.0",
        "uvicorn[standard]>=0.30.0",
        "pyyaml>=6.0.1",
        "python-dotenv>=1.0.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": ["httpx>=0.27.0"],
    },
    entry_points={
        "console_scripts": [
            "review-bot=review_bot.webhook_server:main",
        ],
    },
)
