"""Seed the database with a demo supplier deal and a real-estate project."""
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone


class Command(BaseCommand):
    help = "Seed users, one retail deal (4500 FCFA base) and one real-estate project"

    DEMO_USERS = [
        {"email": "admin@groupbuy.cm", "first_name": "Admin", "last_name": "Plateforme", "role": "ADMIN", "password": "admin123!"},
        {"email": "fournisseur@groupbuy.cm", "first_name": "Awa", "last_name": "Diallo", "role": "SUPPLIER", "password": "fournisseur123!"},
        {"email": "promoteur@groupbuy.cm", "first_name": "Serge", "last_name": "Mbarga", "role": "DEVELOPER", "password": "promoteur123!"},
        {"email": "client@groupbuy.cm", "first_name": "Jean", "last_name": "Kamga", "role": "CUSTOMER", "password": "client123!"},
    ]

    DEAL_TIERS = [
        {"min_participants": 1, "max_participants": 20, "discount_percent": 0},
        {"min_participants": 21, "max_participants": 40, "discount_percent": 5},
        {"min_participants": 41, "max_participants": 60, "discount_percent": 10},
        {"min_participants": 61, "max_participants": 100, "discount_percent": 18},
    ]

    PROJECT_TIERS = [
        {"min_participants": 1, "max_participants": 10, "discount_percent": 3},
        {"min_participants": 11, "max_participants": 25, "discount_percent": 6},
        {"min_participants": 26, "max_participants": 40, "discount_percent": 9},
    ]

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset-passwords",
            action="store_true",
            help="Reset demo users passwords to default values.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding group-buy demo data...")
        users = self._create_users(reset_passwords=options["reset_passwords"])
        deal = self._create_deal(users["SUPPLIER"])
        project = self._create_project(users["DEVELOPER"])
        self.stdout.write(self.style.SUCCESS(
            f"Seed complete: {len(users)} users, deal '{deal.name}', project '{project.name}'"
        ))

    def _create_users(self, reset_passwords=False):
        from accounts.models import User

        users = {}
        for data in self.DEMO_USERS:
            data = dict(data)
            password = data.pop("password")
            user, created = User.objects.get_or_create(email=data["email"], defaults=data)
            if created or reset_passwords:
                user.set_password(password)
                user.save(update_fields=["password"])
            users[user.role] = user
        return users

    def _create_deal(self, supplier):
        from deals.models import Deal
        from deals.services import activate_deal, create_deal

        existing = Deal.objects.filter(supplier=supplier, name="Ventilateur sur pied 16 pouces").first()
        if existing:
            return existing
        deal = create_deal(
            supplier,
            name="Ventilateur sur pied 16 pouces",
            category=Deal.Category.ELECTRICAL,
            description="Ventilateur 3 vitesses, livraison groupee a Douala.",
            original_price=4500,
            total_capacity=100,
            waiting_list_capacity=20,
            target_participants=60,
            min_participants=10,
            end_time=timezone.now() + timedelta(days=7),
            tiers=self.DEAL_TIERS,
        )
        return activate_deal(deal, actor=supplier)

    def _create_project(self, developer_user):
        from realestate.models import Developer, Project
        from realestate.services import create_project

        developer, _ = Developer.objects.get_or_create(
            user=developer_user,
            defaults={"name": "Mbarga Immobilier", "email": developer_user.email},
        )
        existing = Project.objects.filter(developer=developer).first()
        if existing:
            return existing
        now = timezone.now()
        return create_project(
            developer,
            name="Residence Les Palmiers",
            city="Yaounde",
            region="Centre",
            description="Appartements F3 et F4 a Bastos.",
            market_price_baseline=45_000_000,
            total_capacity=40,
            waiting_list_capacity=10,
            pre_registration_deadline=now + timedelta(days=14),
            webinar_at=now + timedelta(days=21),
            confirmation_deadline=now + timedelta(days=28),
            tiers=self.PROJECT_TIERS,
        )
