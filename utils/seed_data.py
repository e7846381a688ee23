import os

import click

from extensions import db
from models.teacher import Teacher
from models.cep import CEPRequirement
from utils.password_utils import hash_password


def seed_admin_teacher(employee_code, name, email, password):
    existing = Teacher.query.filter(
        (Teacher.employee_code == employee_code) |
        (Teacher.email == email)
    ).first()

    if not existing:
        db.session.add(
            Teacher(
                employee_code=employee_code,
                name=name,
                email=email,
                password=hash_password(password)
            )
        )

    db.session.commit()
    print(f"✅ Teacher verified ({employee_code})")


def seed_cep_requirements(class_options):
    # default tiers; teachers adjust them from the CEP page
    default_tiers = [
        {"hours": 30, "credits": 1},
        {"hours": 60, "credits": 2},
    ]

    for cls in class_options:
        existing = CEPRequirement.query.filter_by(assigned_class=cls).first()
        if not existing:
            db.session.add(
                CEPRequirement(
                    assigned_class=cls,
                    minimum_hours=60,
                    credits_config=default_tiers
                )
            )

    db.session.commit()
    print("✅ CEP requirements seeded")


def run_seed(app):
    seed_admin_teacher(
        employee_code=os.getenv("ADMIN_EMPLOYEE_CODE", "EMP001"),
        name=os.getenv("ADMIN_NAME", "Administrator"),
        email=os.getenv("ADMIN_EMAIL", "admin@credilocker.local"),
        password=os.getenv("ADMIN_PASSWORD", "changeme")
    )
    seed_cep_requirements(app.config["CLASS_OPTIONS"])


def register_commands(app):
    @app.cli.command("seed")
    def seed_command():
        """Create the first teacher account and default CEP requirements."""
        run_seed(app)

    @app.cli.command("hash-password")
    @click.argument("password")
    def hash_password_command(password):
        """Print the stored form of PASSWORD (for legacy row migration)."""
        click.echo(hash_password(password))
