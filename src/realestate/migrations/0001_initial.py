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
            name="Developer",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200, verbose_name="nom")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="e-mail")),
                ("phone", models.CharField(blank=True, max_length=30, verbose_name="telephone")),
                ("website", models.URLField(blank=True, verbose_name="site web")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="developer_profiles", to=settings.AUTH_USER_MODEL, verbose_name="compte")),
            ],
            options={
                "verbose_name": "promoteur",
                "verbose_name_plural": "promoteurs",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Project",
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
                ("slug", models.SlugField(max_length=220, unique=True, verbose_name="slug")),
                ("city", models.CharField(db_index=True, max_length=100, verbose_name="ville")),
                ("region", models.CharField(blank=True, max_length=100, verbose_name="region")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                ("market_price_baseline", models.PositiveIntegerField(verbose_name="prix de reference du marche")),
                ("current_stage", models.CharField(choices=[("PRE_REGISTRATION", "Pre-inscription"), ("WEBINAR_SCHEDULED", "Webinaire planifie"), ("FOMO_CONFIRMATION_WINDOW", "Fenetre de confirmation"), ("REGISTRATION_CLOSED", "Inscriptions closes")], db_index=True, default="PRE_REGISTRATION", max_length=30, verbose_name="etape")),
                ("stage_changed_at", models.DateTimeField(blank=True, null=True, verbose_name="etape modifiee le")),
                ("pre_registration_deadline", models.DateTimeField(blank=True, null=True, verbose_name="fin de la pre-inscription")),
                ("webinar_at", models.DateTimeField(blank=True, null=True, verbose_name="date du webinaire")),
                ("confirmation_deadline", models.DateTimeField(blank=True, null=True, verbose_name="fin de la fenetre de confirmation")),
                ("is_published", models.BooleanField(default=True, verbose_name="publie")),
                ("developer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="projects", to="realestate.developer", verbose_name="promoteur")),
            ],
            options={
                "verbose_name": "projet immobilier",
                "verbose_name_plural": "projets immobiliers",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ProjectTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("min_participants", models.PositiveIntegerField(verbose_name="inscrits min")),
                ("max_participants", models.PositiveIntegerField(verbose_name="inscrits max")),
                ("discount_percent", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("100"))], verbose_name="remise (%)")),
                ("explicit_price", models.PositiveIntegerField(blank=True, null=True, verbose_name="prix a partir de")),
                ("commission_percent", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("100"))], verbose_name="commission (%)")),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tiers", to="realestate.project", verbose_name="projet")),
            ],
            options={
                "verbose_name": "palier projet",
                "verbose_name_plural": "paliers projet",
                "ordering": ["min_participants"],
            },
        ),
        migrations.CreateModel(
            name="Registration",
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
                ("full_name", models.CharField(max_length=150, verbose_name="nom complet")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="e-mail")),
                ("phone", models.CharField(blank=True, max_length=30, verbose_name="telephone")),
                ("funnel_status", models.CharField(choices=[("EARLY_REGISTERED", "Pre-inscrit"), ("EVENT_RSVP", "Present au webinaire"), ("FINAL_REGISTERED", "Inscription confirmee")], db_index=True, default="EARLY_REGISTERED", max_length=20, verbose_name="avancement")),
                ("event_rsvp_at", models.DateTimeField(blank=True, null=True, verbose_name="presence confirmee le")),
                ("final_registered_at", models.DateTimeField(blank=True, null=True, verbose_name="inscription confirmee le")),
                ("budget_min", models.PositiveIntegerField(blank=True, null=True, verbose_name="budget min")),
                ("budget_max", models.PositiveIntegerField(blank=True, null=True, verbose_name="budget max")),
                ("unit_type_interests", models.JSONField(blank=True, default=list, verbose_name="types de logement")),
                ("consent_marketing", models.BooleanField(default=False, verbose_name="accepte la prospection")),
                ("consent_data_transfer", models.BooleanField(default=False, verbose_name="accepte le transfert au promoteur")),
                ("notes", models.TextField(blank=True, verbose_name="notes")),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="realestate.project", verbose_name="projet")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="project_registrations", to=settings.AUTH_USER_MODEL, verbose_name="inscrit")),
            ],
            options={
                "verbose_name": "inscription",
                "verbose_name_plural": "inscriptions",
                "ordering": ["project", "position"],
            },
        ),
        migrations.AddConstraint(
            model_name="projecttier",
            constraint=models.UniqueConstraint(fields=("project", "min_participants"), name="uniq_project_tier_min"),
        ),
        migrations.AddConstraint(
            model_name="registration",
            constraint=models.UniqueConstraint(fields=("project", "position"), name="uniq_registration_position_per_project"),
        ),
    ]
