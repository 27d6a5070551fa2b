import setuptools

setuptools.setup(
    name="tiny-mysql",
    version="0.1.0",
    description="Throwaway mysqld instances for tests",
    packages=["tiny_mysql"],
    python_requires=">=3.8",
    install_requires=[
        "PyMySQL",
        "retry",
        "typer",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["tiny-mysql = tiny_mysql.__main__:main"],
    },
)
