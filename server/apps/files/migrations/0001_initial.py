from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='FileRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('storage_key', models.CharField(help_text='Generated blob name: {uuid}.{ext}', max_length=64, unique=True)),
                ('original_name', models.CharField(help_text='Filename supplied by the uploader', max_length=255)),
                ('content_type', models.CharField(help_text='MIME type validated against the allow-list', max_length=255)),
                ('size', models.PositiveBigIntegerField(help_text='File size in bytes')),
                ('signed_url', models.TextField(blank=True, default='', help_text='Last issued time-limited download URL')),
                ('version', models.PositiveIntegerField(default=1)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='file_records', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File record',
                'verbose_name_plural': 'File records',
                'ordering': ['-uploaded_at'],
                'indexes': [models.Index(fields=['owner', '-uploaded_at'], name='files_owner_recent_idx')],
            },
        ),
    ]
