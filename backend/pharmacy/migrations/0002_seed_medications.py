from django.db import migrations

SAMPLE_MEDICATIONS = [
    ('Amoxicillin', 'Amoxicillin', '500mg', 'Capsule', 'Generic Pharma'),
    ('Lisinopril', 'Lisinopril', '10mg', 'Tablet', 'Heart Meds Inc'),
    ('Metformin', 'Metformin HCl', '850mg', 'Tablet', 'Diabetes Care'),
    ('Ibuprofen', 'Ibuprofen', '200mg', 'Tablet', 'Pain Relief Co'),
    ('Omeprazole', 'Omeprazole', '20mg', 'Capsule', 'Gastro Meds'),
]


def seed_medications(apps, schema_editor):
    Medication = apps.get_model('pharmacy', 'Medication')
    for name, generic_name, dosage, form, manufacturer in SAMPLE_MEDICATIONS:
        Medication.objects.get_or_create(
            name=name,
            defaults={
                'generic_name': generic_name,
                'dosage': dosage,
                'form': form,
                'manufacturer': manufacturer,
            },
        )


def unseed_medications(apps, schema_editor):
    Medication = apps.get_model('pharmacy', 'Medication')
    Medication.objects.filter(name__in=[row[0] for row in SAMPLE_MEDICATIONS]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('pharmacy', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_medications, unseed_medications),
    ]
