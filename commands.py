import secrets
import click
from flask import current_app
from flask.cli import with_appcontext
from models import db, User, Project, Task, Token, ROLE_CREATOR
import auth


def register_commands(app):
    app.cli.add_command(init_db)
    app.cli.add_command(create_creator)
    app.cli.add_command(show_db)


@click.command('init-db')
@with_appcontext
def init_db():
    """Create all tables"""
    db.create_all()
    click.echo('Database initialised')


@click.command('create-creator')
@with_appcontext
@click.argument('login')
@click.argument('password')
@click.option('--avatar', default=None, help='Avatar file name')
def create_creator(login, password, avatar):
    """Create a creator account with a fresh registration code"""
    if User.query.filter_by(login=login).first():
        raise click.ClickException(f"Login '{login}' already exists")

    user = User(
        login=login,
        password_hash=auth.hash_password(password),
        avatar=avatar or current_app.config['DEFAULT_AVATAR'],
        role=ROLE_CREATOR,
        registration_token=secrets.token_hex(16)
    )
    db.session.add(user)
    db.session.commit()

    click.echo(f"Creator {user.login} created (id {user.id}, code {user.registration_token})")


@click.command('show-db')
@with_appcontext
def show_db():
    """Print the database contents"""
    click.echo("=" * 60)
    click.echo("Database contents")
    click.echo("=" * 60)

    users = User.query.all()
    click.echo(f"\n[Users] {len(users)} rows:")
    for u in users:
        click.echo(f"  ID: {u.id}, Login: {u.login}, Role: {u.role}")

    projects = Project.query.all()
    click.echo(f"\n[Projects] {len(projects)} rows:")
    for p in projects:
        click.echo(f"  ID: {p.id}, Name: {p.name}, Owner: {p.owner.login}")

    tasks = Task.query.all()
    click.echo(f"\n[Tasks] {len(tasks)} rows:")
    for t in tasks:
        assignees = ', '.join(u.login for u in t.assigned_users) or '-'
        click.echo(f"  ID: {t.id}, Name: {t.name}, Progress: {t.progress}, Assigned: {assignees}")

    tokens = Token.query.all()
    click.echo(f"\n[Tokens] {len(tokens)} rows:")
    for tk in tokens:
        click.echo(f"  ID: {tk.id}, Token: {tk.token}, Owner: {tk.owner.login}")

    click.echo("\n" + "=" * 60)
