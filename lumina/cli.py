# lumina/cli.py
import click

from .extensions import db
from .errors import LuminaError
from .model import Category, Product, Variety
from .services import coupon_service, tracking_service
from .utils.timeutil import parse_iso8601


@click.command("create-coupon")
@click.option("--code", required=True)
@click.option("--type", "ctype", type=click.Choice(["percentage", "fixed"]), default="percentage")
@click.option("--value", type=float, required=True)
@click.option("--apply-to", type=click.Choice(["all", "category", "product"]), default="all")
@click.option("--category-id", type=int)
@click.option("--product-id", type=int)
@click.option("--expires-at", help="ISO 8601, e.g. 2026-12-31T23:59:59Z")
def create_coupon(code, ctype, value, apply_to, category_id, product_id, expires_at):
    expires = parse_iso8601(expires_at) if expires_at else None
    if expires_at and not expires:
        raise click.BadParameter("invalid datetime", param_hint="--expires-at")
    try:
        c = coupon_service.create_coupon({
            "code": code, "type": ctype, "value": value, "apply_to": apply_to,
            "category_id": category_id, "product_id": product_id, "expires_at": expires,
        })
    except LuminaError as e:
        raise click.ClickException(e.message)
    click.echo(f"Coupon created: {c.id} {c.code}")


@click.command("seed-demo")
def seed_demo():
    """Small demo catalog: two categories, three products."""
    if Category.query.first():
        click.echo("Catalog not empty, skipping"); return
    veg = Category(name="Vegetables", code="VEG")
    rice = Category(name="Rice & Grains", code="RICE")
    db.session.add_all([veg, rice])
    db.session.flush()
    db.session.add_all([
        Product(name="Potato", category_id=veg.id, varieties=[
            Variety(name="1kg", price=60, stock=100),
            Variety(name="5kg", price=280, stock=40, has_discount=True, discount_type="fixed", discount_value=20),
        ]),
        Product(name="Onion", category_id=veg.id, varieties=[
            Variety(name="1kg", price=90, stock=80, has_discount=True, discount_type="percentage", discount_value=10),
        ]),
        Product(name="Miniket Rice", category_id=rice.id, is_offer=True, varieties=[
            Variety(name="5kg", price=420, stock=30),
            Variety(name="25kg", price=2000, stock=10),
        ]),
    ])
    db.session.commit()
    click.echo("Demo catalog created")


@click.command("export-sessions")
@click.option("--state", type=click.Choice(["active", "completed", "abandoned"]))
@click.option("--out", "out_path", default="checkout_sessions.xlsx", show_default=True)
def export_sessions(state, out_path):
    sessions = tracking_service.list_sessions(state=state, limit=None)
    df = tracking_service.sessions_frame(sessions)
    df.to_excel(out_path, index=False)
    click.echo(f"{len(df)} sessions exported to {out_path}")


def register_cli(app):
    app.cli.add_command(create_coupon)
    app.cli.add_command(seed_demo)
    app.cli.add_command(export_sessions)
