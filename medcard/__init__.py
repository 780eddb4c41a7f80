"""Health card application.

This package contains models, serializers, services, views and route
registrations for accounts, health profiles, medical records, file
attachments and emergency/shared access.
"""
