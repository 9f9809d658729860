import click
import uvicorn
from sqlalchemy import func

from learnflow_backend.database import get_db, get_engine
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.interface.users import MIN_PASSWORD_LENGTH, is_valid_username, normalize_username
from learnflow_backend.model import Base
from learnflow_backend.model.auth import User
from learnflow_backend.permissions.auth import hash_password


@click.command()
def init_db():
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=get_engine())
    click.echo("Database tables created")


@click.command()
@click.option("--username", "-u", "username", prompt=True)
@click.option("--password", "-p", "password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--email", "-e", "email", default=None)
@click.option("--full-name", "full_name", default="Administrator")
def create_admin(username, password, email, full_name):
    """Create an administrator account."""

    username = normalize_username(username)
    if not is_valid_username(username):
        raise click.BadParameter("Username must be 3-30 characters: letters, numbers or underscores")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise click.BadParameter(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    with next(get_db()) as db:
        if db.query(User).filter(User.username == username).first() is not None:
            raise click.ClickException("Username already exists")
        if email and db.query(User).filter(func.lower(User.email) == email.lower()).first() is not None:
            raise click.ClickException("Email already exists")

        db.add(User(
            username=username,
            email=email.lower() if email else None,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
            full_name=full_name,
            password_set=True,
        ))
        db.commit()

    click.echo(f"Administrator {username} created")


@click.command()
@click.option("--host", default="0.0.0.0")
@click.option("--port", default=8000, type=int)
@click.option("--reload", is_flag=True, default=False)
def serve(host, port, reload):
    """Run the API server."""
    uvicorn.run("learnflow_backend.server:app", host=host, port=port, reload=reload, workers=1)


@click.group()
def cli():
    pass

cli.add_command(init_db, "init-db")
cli.add_command(create_admin, "create-admin")
cli.add_command(serve, "serve")

if __name__ == '__main__':
    cli()
