from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion


BELT_CHOICES = [
    ("white", "White"),
    ("blue", "Blue"),
    ("purple", "Purple"),
    ("brown", "Brown"),
    ("black", "Black"),
    ("coral", "Coral"),
    ("red", "Red"),
]
STRIPE_CHOICES = [(0, "0 stripes"), (1, "1 stripe"), (2, "2 stripes"), (3, "3 stripes"), (4, "4 stripes")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Exam",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=128)),
                ("description", models.TextField(blank=True)),
                ("date", models.DateField()),
                ("location", models.CharField(blank=True, max_length=255)),
                ("belt_from", models.CharField(choices=BELT_CHOICES, max_length=16)),
                ("belt_to", models.CharField(choices=BELT_CHOICES, max_length=16)),
                ("capacity", models.PositiveIntegerField(blank=True, null=True)),
                ("exam_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("min_attendances", models.PositiveIntegerField(blank=True, null=True)),
                ("min_videos_completed", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("scheduled", "Scheduled"),
                            ("in_progress", "In progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="scheduled",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("academy", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="exams", to="accounts.academy")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_exams", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["date", "id"],
                "indexes": [models.Index(fields=["academy", "status"], name="exam_academy_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="ExamEnrollment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "result",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("failed", "Failed"),
                            ("no_show", "No show"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                (
                    "score",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(100),
                        ],
                    ),
                ),
                ("feedback", models.TextField(blank=True, null=True)),
                ("registered_at", models.DateTimeField(auto_now_add=True)),
                ("evaluated_at", models.DateTimeField(blank=True, null=True)),
                ("exam", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="enrollments", to="exams.exam")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="exam_enrollments", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["registered_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="Promotion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_belt", models.CharField(choices=BELT_CHOICES, max_length=16)),
                ("from_stripe", models.PositiveSmallIntegerField(choices=STRIPE_CHOICES)),
                ("to_belt", models.CharField(choices=BELT_CHOICES, max_length=16)),
                ("to_stripe", models.PositiveSmallIntegerField(choices=STRIPE_CHOICES)),
                ("promoted_at", models.DateTimeField()),
                ("notes", models.TextField(blank=True)),
                ("exam", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="promotions", to="exams.exam")),
                ("promoted_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="promotions_given", to=settings.AUTH_USER_MODEL)),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="promotions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-promoted_at", "-id"],
            },
        ),
        migrations.AddConstraint(
            model_name="examenrollment",
            constraint=models.UniqueConstraint(fields=("exam", "user"), name="uniq_exam_enrollment_user"),
        ),
    ]
