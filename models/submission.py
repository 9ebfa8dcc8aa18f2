from enum import Enum

class SubmissionStatus(Enum):
    IDLE = 'idle'
    SUBMITTING = 'submitting'
    SUBMITTED = 'submitted'
    FAILED = 'failed'

# Form field name -> column name in the hosted table
COLUMN_NAMES = {
    'name': 'name',
    'age': 'age',
    'gender': 'gender',
    'email': 'email',
    'interests': 'interests',
    'looking_for': 'lookingFor',
    'ideal_date': 'idealDate',
    'deal_breakers': 'dealBreakers',
}

class ProfileSubmission:
    """A validated profile, frozen at submit time and sent exactly once."""

    __slots__ = tuple(COLUMN_NAMES)

    def __init__(self, name, age, gender, email, interests, looking_for,
                 ideal_date='', deal_breakers=''):
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'age', age)
        object.__setattr__(self, 'gender', gender)
        object.__setattr__(self, 'email', email)
        object.__setattr__(self, 'interests', interests)
        object.__setattr__(self, 'looking_for', looking_for)
        object.__setattr__(self, 'ideal_date', ideal_date or '')
        object.__setattr__(self, 'deal_breakers', deal_breakers or '')

    def __setattr__(self, key, value):
        raise AttributeError('ProfileSubmission is read-only')

    def __eq__(self, other):
        if not isinstance(other, ProfileSubmission):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"<ProfileSubmission name={self.name!r} age={self.age!r}>"

    @classmethod
    def from_form(cls, form):
        """Freeze the data of a validated ValentineProfileForm"""
        return cls(**{field: getattr(form, field).data for field in COLUMN_NAMES})

    def to_dict(self):
        return {field: getattr(self, field) for field in COLUMN_NAMES}

    def to_row(self):
        """Row keyed by the table's column names"""
        return {column: getattr(self, field) for field, column in COLUMN_NAMES.items()}
