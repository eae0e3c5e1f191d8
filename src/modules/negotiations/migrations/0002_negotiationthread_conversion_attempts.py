from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("negotiations", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="negotiationthread",
            name="conversion_attempts",
            field=models.PositiveIntegerField(default=0),
        ),
    ]
