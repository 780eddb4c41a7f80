"""
Management command to populate the database with demo data.

Creates two patients and a provider, their health profiles (public
emergency ids ``EMG001``/``EMG002``), a handful of medical records and one
record-scoped share token.  Safe to run repeatedly.
"""
from datetime import date, timedelta

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from medcard.models import HealthProfile, MedicalRecord, User
from medcard.services.sharing import issue_share_token
from medcard.services.stores import get_store

DEMO_PASSWORD = 'Demo1234!'


class Command(BaseCommand):
    help = 'Populate the database with demo users, profiles, records and a share token'

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('Creating demo data...')

        rajesh = self.create_user('rajesh@demo.com', 'Rajesh Kumar', '+91 9876543210', User.ROLE_PATIENT)
        priya = self.create_user('priya@demo.com', 'Priya Sharma', '+91 9876543211', User.ROLE_PATIENT)
        amit = self.create_user('amit@demo.com', 'Dr. Amit Verma', '+91 9876543212', User.ROLE_PROVIDER)

        self.create_profile(rajesh, 'EMG001', {
            'dob': date(1985, 3, 15),
            'gender': 'male',
            'blood_group': 'O+',
            'weight_kg': 75,
            'height_cm': 175,
            'allergies': ['Peanuts', 'Dust'],
            'chronic_conditions': ['Hypertension', 'Diabetes Type 2'],
            'medications': [
                {'name': 'Metformin', 'dosage': '500mg', 'frequency': 'Twice daily'},
                {'name': 'Lisinopril', 'dosage': '10mg', 'frequency': 'Once daily'},
            ],
            'emergency_contacts': [
                {'name': 'Sunita Kumar', 'relation': 'Wife', 'phone': '+91 9876543213'},
                {'name': 'Rohit Kumar', 'relation': 'Son', 'phone': '+91 9876543214'},
            ],
            'primary_physician': {'name': 'Dr. Kavya Reddy', 'phone': '+91 9876543215'},
            'public_emergency_summary': 'Diabetic patient with hypertension. Allergic to peanuts and dust.',
        })
        self.create_profile(priya, 'EMG002', {
            'dob': date(1992, 8, 22),
            'gender': 'female',
            'blood_group': 'A+',
            'weight_kg': 60,
            'height_cm': 165,
            'allergies': ['Shellfish'],
            'chronic_conditions': ['Asthma'],
            'medications': [{'name': 'Salbutamol inhaler', 'dosage': '100mcg', 'frequency': 'As needed'}],
            'emergency_contacts': [{'name': 'Anil Sharma', 'relation': 'Father', 'phone': '+91 9876543216'}],
            'public_emergency_summary': 'Asthmatic. Carries an inhaler.',
        })

        records = self.create_records(rajesh, amit)
        self.create_records(priya, amit)

        grant = issue_share_token(
            get_store(),
            created_by=rajesh.id,
            record_ids=[records[0].id],
            expires_at=timezone.now() + timedelta(days=7),
        )
        self.stdout.write(f'Demo share token: {grant.token}')
        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_user(self, email, full_name, phone, role):
        user, _ = User.objects.update_or_create(
            email=email,
            defaults={
                'username': email,
                'full_name': full_name,
                'phone': phone,
                'role': role,
                'password': make_password(DEMO_PASSWORD),
            },
        )
        self.stdout.write(f'  user {email} ({role})')
        return user

    def create_profile(self, user, public_id, fields):
        # release the demo id if another profile holds it
        HealthProfile.objects.filter(public_emergency_id=public_id).exclude(user=user).update(public_emergency_id=None)
        HealthProfile.objects.update_or_create(user=user, defaults={**fields, 'public_emergency_id': public_id})
        self.stdout.write(f'  profile {public_id} for {user.email}')

    def create_records(self, patient, provider):
        now = timezone.now()
        samples = [
            ('prescription', 'Quarterly diabetes review', 'Continue current medication.', 30),
            ('report', 'Blood panel', 'HbA1c 6.9%. Lipids within range.', 60),
            ('diagnosis', 'Annual check-up', 'No new findings.', 200),
        ]
        MedicalRecord.objects.filter(user=patient, uploaded_by=provider).delete()
        created = []
        for rec_type, title, description, days_ago in samples:
            created.append(MedicalRecord.objects.create(
                user=patient,
                uploaded_by=provider,
                type=rec_type,
                title=title,
                description=description,
                date_of_visit=now - timedelta(days=days_ago),
                verified_by_provider=True,
            ))
        return created
