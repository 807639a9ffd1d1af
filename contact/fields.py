"""
Contact Form Field Schema

Turns the ``fields`` section of ``CONTACT_US`` into:
- a list of ``FieldSpec`` objects (declaration order is kept)
- a DRF serializer class used to validate submissions
- a JSON description used by clients to render the form
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

import phonenumbers
from django.core.validators import EmailValidator, RegexValidator, URLValidator
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

FIELD_TYPES = ('text', 'email', 'textarea', 'tel', 'url', 'number', 'choice')
CONSTRAINT_NAMES = ('NotBlank', 'Length', 'Email', 'Url', 'Regex', 'Range', 'Choice')


@dataclass
class FieldSpec:
    """One declared form field."""

    name: str
    type: str = 'text'
    required: bool = False
    label: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    constraints: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def not_blank(self) -> bool:
        return 'NotBlank' in self.constraints

    def constraint(self, name) -> Dict[str, Any]:
        return self.constraints.get(name) or {}

    @property
    def choices(self) -> List[Any]:
        choices = self.options.get('choices') or self.constraint('Choice').get('choices') or []
        if isinstance(choices, dict):
            return list(choices.keys())
        return list(choices)


def _normalise_constraints(raw) -> Dict[str, Dict[str, Any]]:
    """
    Accept constraints either as a list of single-key mappings
    (``[{'Length': {'max': 100}}]``) or as a plain mapping.
    """
    constraints = {}
    if isinstance(raw, dict):
        raw = [raw]
    for entry in raw or []:
        if isinstance(entry, str):
            entry = {entry: {}}
        for name, options in entry.items():
            if name in CONSTRAINT_NAMES:
                constraints[name] = dict(options or {})
    return constraints


def build_field_schema(config: Dict[str, Dict[str, Any]]) -> List[FieldSpec]:
    """Build the ordered field schema from configuration."""
    schema = []
    for name, spec in (config or {}).items():
        spec = spec or {}
        field_type = spec.get('type', 'text')
        if field_type not in FIELD_TYPES:
            field_type = 'text'
        schema.append(FieldSpec(
            name=name,
            type=field_type,
            required=bool(spec.get('required', False)),
            label=spec.get('label') or name.replace('_', ' ').capitalize(),
            options=dict(spec.get('options') or {}),
            constraints=_normalise_constraints(spec.get('constraints')),
        ))
    return schema


class PhoneNumberField(serializers.Field):
    """
    Telephone input normalised to ``+<calling code><digits>``.

    Accepts either an international string (``"+36301234567"``) or a
    compound value ``{"country_code": "HU", "number": "30 123 4567"}``.
    """

    default_error_messages = {
        'invalid': _('Enter a valid phone number.'),
        'invalid_country': _('Invalid country code: {country}.'),
        'country_not_allowed': _('Phone numbers from {country} are not accepted.'),
    }

    def __init__(self, allowed_countries=None, default_country='HU', **kwargs):
        self.allowed_countries = (
            [code.upper() for code in allowed_countries] if allowed_countries else None
        )
        self.default_country = (default_country or '').upper() or None
        super().__init__(**kwargs)

    def countries(self):
        """Supported regions with their calling codes, restricted to the allowed list."""
        regions = self.allowed_countries or sorted(phonenumbers.SUPPORTED_REGIONS)
        return [
            {'code': region, 'calling_code': f'+{phonenumbers.country_code_for_region(region)}'}
            for region in regions
            if phonenumbers.country_code_for_region(region)
        ]

    def _check_country(self, region):
        if self.allowed_countries and region not in self.allowed_countries:
            self.fail('country_not_allowed', country=region)

    def _parse(self, number, region):
        try:
            parsed = phonenumbers.parse(number, region)
        except phonenumbers.NumberParseException:
            self.fail('invalid')
        if not phonenumbers.is_possible_number(parsed):
            self.fail('invalid')
        return parsed

    def to_internal_value(self, data):
        if isinstance(data, dict):
            region = str(data.get('country_code') or self.default_country or '').upper()
            number = str(data.get('number') or '').strip()
        elif isinstance(data, str):
            region = None
            number = data.strip()
        else:
            self.fail('invalid')

        if not number:
            if self.required:
                self.fail('required')
            return ''

        if number.startswith('+'):
            parsed = self._parse(number, None)
            region = phonenumbers.region_code_for_number(parsed) or region
        else:
            region = region or self.default_country
            if not region or not phonenumbers.country_code_for_region(region):
                self.fail('invalid_country', country=region or '')
            parsed = self._parse(number, region)

        if region:
            self._check_country(region)

        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)

    def to_representation(self, value):
        return value


class NumberField(serializers.Field):
    """Numeric input kept as the cleaned string the sender typed."""

    default_error_messages = {
        'invalid': _('A valid number is required.'),
        'min_value': _('Ensure this value is greater than or equal to {min_value}.'),
        'max_value': _('Ensure this value is less than or equal to {max_value}.'),
    }

    def __init__(self, min_value=None, max_value=None, **kwargs):
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if isinstance(data, bool):
            self.fail('invalid')

        text = str(data).strip()
        if not text:
            if self.required:
                self.fail('required')
            return ''

        try:
            number = Decimal(text)
        except InvalidOperation:
            self.fail('invalid')
        if not number.is_finite():
            self.fail('invalid')

        if self.min_value is not None and number < Decimal(str(self.min_value)):
            self.fail('min_value', min_value=self.min_value)
        if self.max_value is not None and number > Decimal(str(self.max_value)):
            self.fail('max_value', max_value=self.max_value)
        return text

    def to_representation(self, value):
        return value


def _choice_validator(choices):
    allowed = [str(choice) for choice in choices]

    def validate(value):
        if str(value) not in allowed:
            raise serializers.ValidationError(
                _('"{value}" is not a valid choice.').format(value=value)
            )
    return validate


def _validators(spec: FieldSpec):
    validators = []
    if 'Email' in spec.constraints and spec.type != 'email':
        validators.append(EmailValidator())
    if 'Url' in spec.constraints and spec.type != 'url':
        validators.append(URLValidator())
    if 'Regex' in spec.constraints:
        regex = spec.constraint('Regex')
        validators.append(RegexValidator(
            regex['pattern'],
            message=regex.get('message') or _('This value is not valid.'),
        ))
    if 'Choice' in spec.constraints and spec.type != 'choice':
        validators.append(_choice_validator(spec.choices))
    return validators


def _build_field(spec: FieldSpec) -> serializers.Field:
    required = spec.required or spec.not_blank
    kwargs = {
        'required': required,
        'label': spec.label,
        'validators': _validators(spec),
    }
    length = spec.constraint('Length')

    if spec.type == 'tel':
        return PhoneNumberField(
            allowed_countries=spec.options.get('allowed_countries'),
            default_country=spec.options.get('default_country', 'HU'),
            **kwargs
        )

    if spec.type == 'number':
        range_ = spec.constraint('Range')
        return NumberField(min_value=range_.get('min'), max_value=range_.get('max'), **kwargs)

    if spec.type == 'choice':
        return serializers.ChoiceField(
            choices=spec.choices,
            allow_blank=not spec.not_blank,
            **kwargs
        )

    # blank input skips the length checks unless NotBlank is set
    char_kwargs = dict(
        allow_blank=not spec.not_blank,
        max_length=length.get('max'),
        min_length=length.get('min'),
        **kwargs
    )
    if spec.type == 'email':
        return serializers.EmailField(**char_kwargs)
    if spec.type == 'url':
        return serializers.URLField(**char_kwargs)
    return serializers.CharField(**char_kwargs)


def build_submission_serializer(schema: Iterable[FieldSpec]):
    """Return a DRF ``Serializer`` class validating the given schema."""
    attrs = {spec.name: _build_field(spec) for spec in schema}
    return type('ContactSubmissionSerializer', (serializers.Serializer,), attrs)


def describe_schema(schema: Iterable[FieldSpec]) -> List[Dict[str, Any]]:
    """JSON description of the form, in declaration order."""
    description = []
    for spec in schema:
        entry = {
            'name': spec.name,
            'type': spec.type,
            'required': spec.required or spec.not_blank,
            'label': str(spec.label) if spec.label else None,
            'constraints': spec.constraints,
        }
        options = {key: value for key, value in spec.options.items() if key != 'choices'}
        if spec.type == 'choice':
            entry['choices'] = spec.choices
        if spec.type == 'tel':
            phone = PhoneNumberField(
                allowed_countries=spec.options.get('allowed_countries'),
                default_country=spec.options.get('default_country', 'HU'),
            )
            options['default_country'] = phone.default_country
            options['countries'] = phone.countries()
        entry['options'] = options
        description.append(entry)
    return description


def _as_text(value):
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    return str(value)


def extract_message_data(schema: Iterable[FieldSpec], fields: Dict[str, Any], exclude=()) -> Dict[str, str]:
    """
    Collect message data from submitted fields.

    Declared fields come first, in schema order, with missing ones stored as
    an empty string. Any other submitted field follows unless it is excluded.
    """
    excluded = set(exclude)
    data = {}
    for spec in schema:
        if spec.name in excluded:
            continue
        data[spec.name] = _as_text(fields.get(spec.name))

    for name, value in fields.items():
        if name in data or name in excluded:
            continue
        data[name] = _as_text(value)
    return data
