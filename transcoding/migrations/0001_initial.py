# Generated migration file
from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Video',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(blank=True, default='', max_length=255)),
                ('source_path', models.CharField(max_length=512)),
                ('output_dir', models.CharField(max_length=512)),
                ('status', models.CharField(choices=[('processing', 'Processing'), ('ready', 'Ready'), ('failed', 'Failed')], default='processing', max_length=16)),
                ('duration', models.PositiveIntegerField(default=0)),
                ('poster_url', models.CharField(blank=True, default='', max_length=512)),
                ('renditions', models.JSONField(blank=True, default=list)),
                ('published', models.BooleanField(default=False)),
                ('error', models.TextField(blank=True, default='')),
                ('task_id', models.CharField(blank=True, default='', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
