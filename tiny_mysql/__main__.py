import logging

import typer

from tiny_mysql import TinyMySQL
from tiny_mysql.db_config import DBConfig
from tiny_mysql.env import find_program, probe_defaults

app = typer.Typer()

formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
handler = logging.StreamHandler()
handler.setFormatter(formatter)
logger = logging.getLogger("tiny_mysql")
logger.addHandler(handler)
logger.setLevel(logging.DEBUG)


def main():
    app()


@app.command()
def start(database: str = "test", rm: bool = True):
    config = DBConfig(database=database, delete_on_exit=rm)
    with TinyMySQL(config) as mysql:
        server = mysql.status()
        typer.echo(f"work dir: {server.work_dir}")
        typer.echo(f"pid: {server.pid}")
        typer.echo(f"dsn: {server.dsn}")
        typer.prompt("Press q to exit")


@app.command()
def probe(mysqld: str = "mysqld", install_db: str = "mysql_install_db"):
    mysqld_path = find_program(mysqld)
    typer.echo(f"mysqld: {mysqld_path}")
    typer.echo(f"mysql_install_db: {find_program(install_db)}")
    typer.echo(probe_defaults(mysqld_path))


if __name__ == "__main__":
    main()
