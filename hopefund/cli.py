# hopefund/cli.py
# =============================================================================
# `flask hopefund ...` maintenance commands
# Permission catalogue sync/audit, first Super Admin, Faker demo data and the
# nightly expiry of fundraising requests past their information deadline.
# =============================================================================
from __future__ import annotations

import random
from datetime import date, timedelta

import click
from faker import Faker
from flask import Flask
from flask.cli import AppGroup
from sqlalchemy.exc import SQLAlchemyError

from hopefund.extensions import db
from hopefund.models import FAQ, Admin, Donation, DonationItem, Event, FundraisingCategory, Role, Slider, User
from hopefund.models.mixins import STATUS_ACTIVE, utcnow
from hopefund.services.fund_requests import expire_overdue
from hopefund.services.permissions import SUPER_ADMIN_ROLE, audit_permissions, sync_permissions

hopefund_cli = AppGroup("hopefund", help="HopeFund maintenance commands.")

DEMO_PASSWORD = "demo12345"
DEMO_CATEGORIES = ("Medical", "Education", "Community", "Disaster Relief", "Animals")


@hopefund_cli.command("sync-permissions")
def sync_permissions_cmd() -> None:
    """Create missing permissions and grant all of them to Super Admin."""
    result = sync_permissions()
    click.secho(f"✅ {len(result['created'])} permission(s) created", fg="green")
    if result["granted"]:
        click.echo(f"🔐 Granted to {SUPER_ADMIN_ROLE}: {', '.join(result['granted'])}")


@hopefund_cli.command("audit-permissions")
def audit_permissions_cmd() -> None:
    """Report permissions missing from, or unknown to, the catalogue."""
    report = audit_permissions()
    if not report["missing"] and not report["extra"]:
        click.secho("✅ Permission catalogue is in sync", fg="green")
        return
    for name in report["missing"]:
        click.secho(f"missing  {name}", fg="red")
    for name in report["extra"]:
        click.secho(f"extra    {name}", fg="yellow")
    raise SystemExit(1)


@hopefund_cli.command("create-superadmin")
@click.option("--email", required=True, help="Login email.")
@click.option("--password", required=True, help="At least 8 characters.")
@click.option("--name", default="Super Admin", show_default=True)
def create_superadmin_cmd(email: str, password: str, name: str) -> None:
    """Create (or promote) a Super Admin account."""
    if len(password) < 8:
        raise click.BadParameter("Password must be at least 8 characters", param_hint="--password")

    sync_permissions()
    role = Role.query.filter(Role.name == SUPER_ADMIN_ROLE).one()
    email = email.strip().lower()

    admin = Admin.query.filter(Admin.email == email).first()
    if admin is None:
        admin = Admin(email=email, name=name.strip())
        db.session.add(admin)
        click.echo(f"✨ Creating {email}")
    else:
        click.echo(f"🔁 Updating existing admin {email}")
    admin.role = role
    admin.status = STATUS_ACTIVE
    admin.set_password(password)
    db.session.commit()
    click.secho(f"✅ {email} is a {SUPER_ADMIN_ROLE}", fg="green")


@hopefund_cli.command("seed-demo")
@click.option("--events", default=6, show_default=True, help="Number of demo events.")
@click.option("--donors", default=8, show_default=True, help="Number of demo donors.")
@click.option("--donations", default=20, show_default=True, help="Number of paid demo donations.")
@click.option("--seed", type=int, default=None, help="Faker/random seed for reproducible data.")
def seed_demo_cmd(events: int, donors: int, donations: int, seed) -> None:
    """🌱 Seed events, FAQs, sliders, categories, donors and donations."""
    fake = Faker()
    if seed is not None:
        Faker.seed(seed)
        random.seed(seed)

    try:
        event_rows = _seed_events(fake, events)
        _seed_content(fake)
        donor_rows = _seed_donors(fake, donors)
        _seed_donations(fake, event_rows, donor_rows, donations)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        click.secho(f"❌ Seeding failed: {e}", fg="red", bold=True)
        raise SystemExit(1)

    click.secho("✅ Demo data seeded successfully!", fg="bright_green", bold=True)
    click.echo(f"🔐 Demo password for all donors: {DEMO_PASSWORD}")


@hopefund_cli.command("expire-requests")
def expire_requests_cmd() -> None:
    """Expire Information Needed requests whose deadline has passed."""
    count = expire_overdue()
    click.echo(f"⌛ {count} fundraising request(s) expired")


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _seed_events(fake: Faker, count: int) -> list:
    rows = []
    today = date.today()
    for i in range(count):
        start = today + timedelta(days=random.randint(-20, 30))
        price = random.choice([10, 25, 50, 100])
        ev = Event(
            title=fake.catch_phrase(),
            description=fake.paragraph(nb_sentences=5),
            location=fake.city(),
            start_date=start,
            end_date=start + timedelta(days=random.randint(7, 60)),
            price_cents=price * 100,
            target_amount_cents=random.randint(50, 500) * 1000,
            is_fixed_donation=random.random() < 0.3,
            is_featured=i < 2,
            status=STATUS_ACTIVE,
        )
        db.session.add(ev)
        rows.append(ev)
    db.session.flush()
    click.echo(f"🎯 {len(rows)} events")
    return rows


def _seed_content(fake: Faker) -> None:
    next_faq = (db.session.query(db.func.max(FAQ.ordering)).scalar() or 0) + 1
    for i in range(5):
        db.session.add(
            FAQ(
                question=fake.sentence(nb_words=8).rstrip(".") + "?",
                answer=fake.paragraph(nb_sentences=3),
                ordering=next_faq + i,
                status=STATUS_ACTIVE,
            )
        )

    next_slide = (db.session.query(db.func.max(Slider.ordering)).scalar() or 0) + 1
    for i in range(3):
        db.session.add(
            Slider(
                title=fake.bs().title(),
                subtitle=fake.sentence(),
                image=f"/uploads/images/demo-slide-{i + 1}.jpg",
                button_text="Donate now",
                button_link="/events",
                ordering=next_slide + i,
                status=STATUS_ACTIVE,
            )
        )

    existing = {c.name for c in FundraisingCategory.query.all()}
    for name in DEMO_CATEGORIES:
        if name not in existing:
            db.session.add(FundraisingCategory(name=name, status=STATUS_ACTIVE))
    click.echo("📚 FAQs, sliders and categories")


def _seed_donors(fake: Faker, count: int) -> list:
    rows = []
    for _ in range(count):
        email = fake.unique.email().lower()
        if User.query.filter(User.email == email).first():
            continue
        user = User(name=fake.name(), email=email, country=fake.country(), email_verified_at=utcnow())
        user.set_password(DEMO_PASSWORD)
        db.session.add(user)
        rows.append(user)
    db.session.flush()
    click.echo(f"🙋 {len(rows)} donors")
    return rows


def _seed_donations(fake: Faker, events: list, donors: list, count: int) -> None:
    if not events:
        return
    for _ in range(count):
        ev = random.choice(events)
        qty = random.randint(1, 3)
        donor = random.choice(donors) if donors and random.random() < 0.7 else None
        donation = Donation(
            user_id=donor.id if donor else None,
            donor_name=donor.name if donor else fake.name(),
            donor_email=donor.email if donor else fake.email(),
            is_anonymous=random.random() < 0.2,
            amount_cents=ev.price_cents * qty,
            tip_cents=random.choice([0, 0, 200, 500]),
            status="succeeded",
            provider_status="succeeded",
            paid_at=utcnow(),
        )
        donation.items.append(
            DonationItem(event_id=ev.id, title=ev.title, quantity=qty, unit_amount_cents=ev.price_cents)
        )
        ev.raised_cents = (ev.raised_cents or 0) + donation.amount_cents
        db.session.add(donation)
    click.echo(f"💸 {count} donations")


def register_cli(app: Flask) -> None:
    app.cli.add_command(hopefund_cli)
