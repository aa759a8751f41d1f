from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("ticketing", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="holdsession",
            name="finalized_by",
            field=models.CharField(blank=True, max_length=40, null=True),
        ),
    ]
