# forms/__init__.py
from forms.profile_form import (
    FIELD_RULES, GENDER_OPTIONS, ValentineProfileForm,
    build_validators, collect_errors, field_error, type_errors, validate_field
)

__all__ = [
    'FIELD_RULES', 'GENDER_OPTIONS', 'ValentineProfileForm',
    'build_validators', 'collect_errors', 'field_error', 'type_errors', 'validate_field'
]
