import click
from faker import Faker
from flask import Flask
from flask.cli import AppGroup, with_appcontext

from impactdeck.extensions import db
from impactdeck.helpers.donors_csv import DonorCSVError, parse_donor_csv
from impactdeck.security.deck_token import AccessToken, current_signer

deck_token_cli = AppGroup("deck-token", help="Issue and check deck content tokens.")
donors_cli = AppGroup("donors", help="Donor list tools.")


@deck_token_cli.command("issue")
@click.argument("resource_id")
def issue_token(resource_id):
    """Print a fresh token for RESOURCE_ID (e.g. deck:acme-nonprofit)."""
    click.echo(current_signer().issue(resource_id))


@deck_token_cli.command("check")
@click.argument("token")
@click.argument("resource_id")
def check_token(token, resource_id):
    """Exit 0 if TOKEN is currently valid for RESOURCE_ID, 1 otherwise."""
    ok = current_signer().validate(token, resource_id)
    parsed = AccessToken.decode(token)
    if parsed is not None:
        click.echo(f"resource={parsed.resource_id} issued_at_ms={parsed.issued_at_ms}")
    if ok:
        click.secho("valid", fg="green")
        return
    click.secho("invalid", fg="red")
    raise SystemExit(1)


@donors_cli.command("preview")
@click.argument("csv_file", type=click.File("r", encoding="utf-8-sig"))
@click.option("--max-donors", default=500, show_default=True)
def preview_donors(csv_file, max_donors):
    """Parse a donor CSV and show what would be generated."""
    try:
        donors = parse_donor_csv(csv_file.read(), max_donors=max_donors)
    except DonorCSVError as e:
        raise click.ClickException(str(e))

    for d in donors:
        click.echo(f"{d.slug:<40} {d.name:<30} {d.email or '-':<30} {d.amount or '-'}")
    click.secho(f"{len(donors)} donors", fg="bright_green", bold=True)


@click.command("seed-demo")
@click.option("--orgs", default=3, show_default=True)
@click.option("--blob-base", default="https://blob.example.com/decks", show_default=True)
@click.option("--clear", is_flag=True)
@with_appcontext
def seed_demo(orgs, blob_base, clear):
    """Seed demo organizations, each with a completed impact deck."""
    from impactdeck.models import Deck, DeckEvent, Organization  # lazy import

    fake = Faker()
    if clear:
        for model in (DeckEvent, Deck, Organization):
            deleted = model.query.delete()
            click.secho(f"  ↳ {deleted} {model.__name__} removed", fg="yellow")
        db.session.commit()

    for _ in range(orgs):
        name = f"{fake.city()} {fake.random_element(['Food Bank', 'Youth Alliance', 'Literacy Project'])}"
        org = Organization.create(name=name, website_url=fake.url())
        db.session.add(
            Deck(
                slug=f"{org.slug}-impact",
                organization=org,
                org_name=org.name,
                org_url=org.website_url,
                deck_type=Deck.TYPE_IMPACT,
                status=Deck.STATUS_COMPLETE,
                deck_url=f"{blob_base.rstrip('/')}/{org.slug}.html",
                brand_data={"mission": fake.sentence(nb_words=12)},
            )
        )
        click.echo(f"✨ {org.slug}")

    db.session.commit()
    click.secho("✅ Demo data seeded!", fg="bright_green", bold=True)


def register_cli(app: Flask) -> None:
    app.cli.add_command(deck_token_cli)
    app.cli.add_command(donors_cli)
    app.cli.add_command(seed_demo)
