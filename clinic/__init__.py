"""Hospital administration app.

This package contains the models, serializers, services and views that
back the administrative screens: patient records, clinical history,
scheduling, billing, inventory and the dashboard.
"""
