import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("catalog", "0002_productvariant"),
        ("negotiations", "0002_negotiationthread_conversion_attempts"),
    ]

    operations = [
        migrations.AddField(
            model_name="negotiationthread",
            name="variant",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="negotiations",
                to="catalog.productvariant",
            ),
        ),
    ]
