import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Deal",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("total_capacity", models.PositiveIntegerField(verbose_name="capacite totale")),
                ("waiting_list_capacity", models.PositiveIntegerField(default=0, verbose_name="capacite liste d'attente")),
                ("issued_positions", models.PositiveIntegerField(default=0, editable=False, help_text="Compteur monotone; une position n'est jamais reattribuee.", verbose_name="positions attribuees")),
                ("confirmed_count", models.PositiveIntegerField(default=0, editable=False, verbose_name="participants confirmes")),
                ("waiting_count", models.PositiveIntegerField(default=0, editable=False, verbose_name="en liste d'attente")),
                ("platform_commission_percent", models.DecimalField(blank=True, decimal_places=2, help_text="Laissez vide pour utiliser la commission par defaut de la plateforme.", max_digits=5, null=True, verbose_name="commission plateforme (%)")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200, verbose_name="nom")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                ("category", models.CharField(choices=[("apartments", "Appartements"), ("electrical", "Electromenager"), ("furniture", "Mobilier"), ("electronics", "Electronique"), ("home", "Maison"), ("fashion", "Mode")], db_index=True, max_length=20, verbose_name="categorie")),
                ("original_price", models.PositiveIntegerField(verbose_name="prix d'origine")),
                ("target_participants", models.PositiveIntegerField(verbose_name="objectif de participants")),
                ("min_participants", models.PositiveIntegerField(default=1, help_text="En dessous de ce nombre a l'echeance, l'offre est annulee.", verbose_name="minimum de participants")),
                ("end_time", models.DateTimeField(db_index=True, verbose_name="fin de l'offre")),
                ("status", models.CharField(choices=[("DRAFT", "Brouillon"), ("ACTIVE", "Actif"), ("CLOSED", "Cloture"), ("CANCELLED", "Annule")], db_index=True, default="DRAFT", max_length=20, verbose_name="statut")),
                ("activated_at", models.DateTimeField(blank=True, null=True, verbose_name="active le")),
                ("closed_at", models.DateTimeField(blank=True, null=True, verbose_name="cloture le")),
                ("supplier", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="deals", to=settings.AUTH_USER_MODEL, verbose_name="fournisseur")),
            ],
            options={
                "verbose_name": "offre groupee",
                "verbose_name_plural": "offres groupees",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="DealTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("min_participants", models.PositiveIntegerField(verbose_name="participants min")),
                ("max_participants", models.PositiveIntegerField(verbose_name="participants max")),
                ("discount_percent", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("100"))], verbose_name="remise (%)")),
                ("explicit_price", models.PositiveIntegerField(blank=True, help_text="Remplace le prix calcule a partir de la remise.", null=True, verbose_name="prix impose")),
                ("commission_percent", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("100"))], verbose_name="commission (%)")),
                ("deal", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tiers", to="deals.deal", verbose_name="offre")),
            ],
            options={
                "verbose_name": "palier",
                "verbose_name_plural": "paliers",
                "ordering": ["min_participants"],
            },
        ),
        migrations.CreateModel(
            name="Participant",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("position", models.PositiveIntegerField(verbose_name="position")),
                ("admission_status", models.CharField(choices=[("CONFIRMED", "Confirme"), ("WAITING_LIST", "Liste d'attente")], db_index=True, max_length=20, verbose_name="statut d'admission")),
                ("price_paid", models.PositiveIntegerField(blank=True, help_text="Prix unitaire fige a l'admission; vide en liste d'attente.", null=True, verbose_name="prix")),
                ("quantity", models.PositiveIntegerField(default=1, verbose_name="quantite")),
                ("tier_index", models.PositiveSmallIntegerField(blank=True, null=True, verbose_name="palier")),
                ("position_in_tier", models.PositiveIntegerField(blank=True, null=True, verbose_name="position dans le palier")),
                ("joined_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="rejoint le")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True, verbose_name="annule le")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(blank=True, max_length=150, verbose_name="nom")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="e-mail")),
                ("phone", models.CharField(blank=True, max_length=30, verbose_name="telephone")),
                ("deal", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="participants", to="deals.deal", verbose_name="offre")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="participations", to=settings.AUTH_USER_MODEL, verbose_name="client")),
            ],
            options={
                "verbose_name": "participant",
                "verbose_name_plural": "participants",
                "ordering": ["deal", "position"],
            },
        ),
        migrations.AddConstraint(
            model_name="dealtier",
            constraint=models.UniqueConstraint(fields=("deal", "min_participants"), name="uniq_deal_tier_min"),
        ),
        migrations.AddConstraint(
            model_name="participant",
            constraint=models.UniqueConstraint(fields=("deal", "position"), name="uniq_participant_position_per_deal"),
        ),
    ]
