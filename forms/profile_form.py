"""
Valentine profile form.

Every validator on the form is generated from FIELD_RULES, so the table
below is the single place a field's required/range/pattern constraints
live. Messages are the ones shown inline under each input.
"""
import re

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import EmailField, HiddenField, IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Regexp, StopValidation, ValidationError

GENDER_OPTIONS = [
    ('', 'Select gender'),
    ('male', 'Male'),
    ('female', 'Female'),
    ('non-binary', 'Non-binary'),
    ('other', 'Other'),
]

FIELD_RULES = {
    'name': {
        'kind': 'text',
        'required': 'Name is required',
    },
    'age': {
        'kind': 'number',
        'required': 'Age is required',
        'min': (18, 'Minimum age is 18'),
        'max': (120, 'Maximum age is 120'),
    },
    'gender': {
        'kind': 'choice',
        'required': 'Gender is required',
    },
    'email': {
        'kind': 'text',
        'required': 'Email is required',
        'pattern': (r'^\S+@\S+\Z', 'Invalid email address'),
        'flags': re.IGNORECASE,
    },
    'interests': {
        'kind': 'text',
        'required': 'This field is required',
    },
    'looking_for': {
        'kind': 'text',
        'required': 'This field is required',
    },
    'ideal_date': {
        'kind': 'text',
    },
    'deal_breakers': {
        'kind': 'text',
    },
}


class Range:
    """Inclusive numeric bounds with a separate message for each side.

    Values that failed to parse are left to the field's own error.
    """

    def __init__(self, min=None, max=None, min_message=None, max_message=None):
        self.min = min
        self.max = max
        self.min_message = min_message or f'Must be at least {min}'
        self.max_message = max_message or f'Must be at most {max}'
        self.field_flags = {}
        if min is not None:
            self.field_flags['min'] = min
        if max is not None:
            self.field_flags['max'] = max

    def __call__(self, form, field):
        value = field.data
        if value is None:
            return
        if self.min is not None and value < self.min:
            raise ValidationError(self.min_message)
        if self.max is not None and value > self.max:
            raise ValidationError(self.max_message)


class Present:
    """Required check for numbers: only a missing, null or blank value counts as empty"""

    field_flags = {'required': True}

    def __init__(self, message):
        self.message = message

    def __call__(self, form, field):
        if field.raw_data and field.raw_data[0] is not None and field.raw_data[0] != '':
            return
        field.errors[:] = []
        raise StopValidation(self.message)


class WholeNumberField(IntegerField):
    """IntegerField that treats a blank input as missing rather than malformed"""

    invalid_message = 'Age must be a whole number'

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] is None or valuelist[0] == '':
            self.data = None
            return
        try:
            self.data = int(valuelist[0])
        except (TypeError, ValueError) as exc:
            self.data = None
            raise ValueError(self.invalid_message) from exc


def build_validators(rules):
    """Turn one entry of FIELD_RULES into a WTForms validator chain"""
    validators = []

    required = rules.get('required')
    if required:
        if rules.get('kind') == 'number':
            validators.append(Present(message=required))
        else:
            validators.append(DataRequired(message=required))

    if 'min' in rules or 'max' in rules:
        min_value, min_message = rules.get('min', (None, None))
        max_value, max_message = rules.get('max', (None, None))
        validators.append(Range(min=min_value, max=max_value,
                                min_message=min_message, max_message=max_message))

    if 'pattern' in rules:
        pattern, message = rules['pattern']
        validators.append(Regexp(pattern, flags=rules.get('flags', 0), message=message))

    return validators


class ValentineProfileForm(FlaskForm):
    submission_id = HiddenField()

    name = StringField('Name', validators=build_validators(FIELD_RULES['name']),
                       render_kw={'placeholder': 'Your name'})
    age = WholeNumberField('Age', validators=build_validators(FIELD_RULES['age']),
                           render_kw={'placeholder': 'Your age'})
    gender = SelectField('Gender', choices=GENDER_OPTIONS, default='',
                         validators=build_validators(FIELD_RULES['gender']))
    email = EmailField('Email', validators=build_validators(FIELD_RULES['email']),
                       render_kw={'placeholder': 'your.email@example.com'})
    interests = TextAreaField('Your Interests', validators=build_validators(FIELD_RULES['interests']),
                              render_kw={'placeholder': 'Tell us about your hobbies and interests...'})
    looking_for = TextAreaField("What You're Looking For",
                                validators=build_validators(FIELD_RULES['looking_for']),
                                render_kw={'placeholder': 'Describe your ideal match...'})
    ideal_date = TextAreaField('Ideal First Date',
                               render_kw={'placeholder': 'Describe your perfect first date...'})
    deal_breakers = TextAreaField('Deal Breakers',
                                  render_kw={'placeholder': 'Any absolute deal breakers?'})


def field_error(form, name):
    """First error message of a field, or None"""
    errors = getattr(form, name).errors
    return errors[0] if errors else None


def collect_errors(form):
    """Map of field name -> first error for every profile field that failed"""
    errors = {}
    for name in FIELD_RULES:
        message = field_error(form, name)
        if message:
            errors[name] = message
    return errors


def type_errors(data):
    """Map of field name -> message for values of the wrong JSON type.

    Text fields take strings, the number field takes strings or integers,
    and null is always accepted as "not given". Unknown keys are ignored.
    """
    errors = {}
    for name, value in data.items():
        rules = FIELD_RULES.get(name)
        if rules is None or value is None:
            continue
        if rules['kind'] == 'number':
            if isinstance(value, bool) or not isinstance(value, (str, int)):
                errors[name] = 'Must be a number'
        elif not isinstance(value, str):
            errors[name] = 'Must be text'
    return errors


def validate_field(name, value):
    """Validate a single field in isolation (the on-blur check).

    Returns the error message, or None when the value passes. Raises
    KeyError for names that are not profile fields.
    """
    if name not in FIELD_RULES:
        raise KeyError(name)

    form = ValentineProfileForm(formdata=MultiDict([(name, value)]), meta={'csrf': False})
    field = getattr(form, name)
    field.validate(form)
    return field_error(form, name)
