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


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Video",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("guard", "Guard"),
                            ("guard_pass", "Guard pass"),
                            ("mount", "Mount"),
                            ("back", "Back"),
                            ("side_control", "Side control"),
                            ("submission", "Submission"),
                            ("defense", "Defense"),
                            ("sweep", "Sweep"),
                            ("takedown", "Takedown"),
                            ("escape", "Escape"),
                            ("drill", "Drill"),
                            ("competition", "Competition"),
                        ],
                        max_length=32,
                    ),
                ),
                ("min_belt", models.CharField(choices=BELT_CHOICES, default="white", max_length=16)),
                ("max_belt", models.CharField(blank=True, choices=BELT_CHOICES, max_length=16, null=True)),
                ("is_published", models.BooleanField(default=False)),
                ("view_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("academy", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="videos", to="accounts.academy")),
            ],
            options={
                "ordering": ["title"],
            },
        ),
        migrations.CreateModel(
            name="VideoProgress",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "percentage",
                    models.PositiveSmallIntegerField(
                        default=0, validators=[django.core.validators.MaxValueValidator(100)]
                    ),
                ),
                ("completed", models.BooleanField(default=False)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="video_progress", to=settings.AUTH_USER_MODEL)),
                ("video", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="progress", to="videos.video")),
            ],
            options={
                "ordering": ["-updated_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="videoprogress",
            constraint=models.UniqueConstraint(fields=("user", "video"), name="uniq_video_progress_user"),
        ),
    ]
