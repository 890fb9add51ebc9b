from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenancy', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Config',
            fields=[
                ('key', models.CharField(max_length=255, primary_key=True, serialize=False)),
                ('value', models.TextField(blank=True, null=True)),
            ],
            options={
                'db_table': 'config',
            },
        ),
        migrations.CreateModel(
            name='MenuItem',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('image_url', models.URLField(blank=True, max_length=500)),
                ('availability', models.CharField(choices=[('Available', 'Available'), ('Unavailable', 'Unavailable')], default='Available', max_length=20)),
                ('price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('has_sizes', models.BooleanField(default=False)),
                ('sizes', models.JSONField(blank=True, null=True)),
                ('pricing_mode', models.CharField(choices=[('inclusive', 'Price includes tax'), ('exclusive', 'Tax added on top')], default='inclusive', max_length=20)),
                ('pricing_metadata', models.JSONField(blank=True, default=dict)),
                ('show_tax_on_bill', models.BooleanField(default=True)),
                ('dining_cgst_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('dining_sgst_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('takeaway_cgst_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('takeaway_sgst_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('onlineorder_cgst_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('onlineorder_sgst_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('hotel', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='menu_items', to='tenancy.hotel')),
                ('branch', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='menu_items', to='tenancy.branch')),
            ],
            options={
                'db_table': 'menu_items',
                'ordering': ['category', 'name'],
            },
        ),
    ]
