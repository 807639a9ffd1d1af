# Generated manually to add ContactMessage model
from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ContactMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False, help_text='When the message was submitted')),
                ('data', models.JSONField(default=dict, help_text='Submitted form fields (name, email, subject, message, custom fields)')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True, help_text='IP address of the submitter (for spam prevention)')),
                ('user_agent', models.TextField(blank=True, null=True, help_text='Browser user agent (for spam prevention)')),
                ('verified', models.BooleanField(default=True, help_text='False while the sender has not confirmed their email address')),
                ('verification_token', models.CharField(blank=True, max_length=64, null=True, unique=True, help_text='Single-use token sent to the sender for confirmation')),
                ('verified_at', models.DateTimeField(blank=True, null=True, help_text='When the sender confirmed their email address')),
            ],
            options={
                'verbose_name': 'Contact Message',
                'verbose_name_plural': 'Contact Messages',
                'db_table': 'contact_messages',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='contactmessage',
            index=models.Index(fields=['verified', 'created_at'], name='contact_verified_created_idx'),
        ),
    ]
