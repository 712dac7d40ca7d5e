import click
from flask.cli import with_appcontext
from sqlalchemy import func
from csat.extensions import db
from csat.models.user import User
from csat.services.schools import seed_schools

@click.group()
def users():
    """User management."""

@users.command("create")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", default=None)
@with_appcontext
def users_create(email, password, name):
    email = email.strip()
    if db.session.query(User).filter(func.lower(User.email) == email.lower()).count():
        raise click.ClickException("User already exists")

    user = User(email=email, name=(name or None), is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    click.echo(f"User created id={user.id} email={user.email}")

@users.command("set-password")
@click.option("--email", required=True)
@click.option("--password", required=True)
@with_appcontext
def users_set_password(email, password):
    user = db.session.query(User).filter(func.lower(User.email) == email.strip().lower()).one_or_none()
    if not user:
        raise click.ClickException("User not found")
    user.set_password(password)
    db.session.commit()
    click.echo(f"Password updated for {user.email}")

@click.group()
def schools():
    """School (HEI) catalog ops."""

@schools.command("seed")
@click.option("--name", "names", multiple=True, help="School name; repeat for several")
@click.option("--file", "path", type=click.File("r", encoding="utf-8"), default=None,
              help="Text file with one school name per line")
@with_appcontext
def schools_seed(names, path):
    all_names = list(names)
    if path is not None:
        all_names.extend(line.strip() for line in path if line.strip())
    if not all_names:
        raise click.ClickException("Nothing to seed: pass --name or --file")

    added = seed_schools(db.session, all_names)
    db.session.commit()
    click.echo(f"Seeded {added} school(s); {len(all_names) - added} skipped")

def register_cli(app):
    app.cli.add_command(users)
    app.cli.add_command(schools)
