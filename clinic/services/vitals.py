from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from rest_framework.exceptions import ValidationError

from clinic.models import Patient, VitalsRecord

_CENTS = Decimal('0.01')


def _bmi_ceiling() -> Decimal:
    field = VitalsRecord._meta.get_field('bmi')
    return Decimal(10) ** (field.max_digits - field.decimal_places)


def compute_bmi(weight, height_cm) -> Optional[Decimal]:
    """BMI from weight in kg and height in cm, rounded to two decimals.

    Returns ``None`` when either measurement is missing or not positive.
    """
    if weight in (None, '') or height_cm in (None, ''):
        return None
    try:
        w = Decimal(str(weight))
        h = Decimal(str(height_cm)) / 100
    except InvalidOperation:
        return None
    if w <= 0 or h <= 0:
        return None
    return (w / (h * h)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def record_vitals(patient: Patient, **fields) -> VitalsRecord:
    # bmi is derived once here; records are never updated afterwards
    fields.pop('bmi', None)
    bmi = compute_bmi(fields.get('weight'), fields.get('height'))
    if bmi is not None and bmi >= _bmi_ceiling():
        raise ValidationError({'height': 'weight and height give an implausible BMI'})
    return VitalsRecord.objects.create(patient=patient, bmi=bmi, **fields)
