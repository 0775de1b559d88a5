"""
specmock fake value generators

Named zero-argument generators built on Faker, plus the one and two
argument factories available to ``func:`` context values.

Names are dotted snake_case paths grouped by topic, e.g.
``person.first_name`` or ``company.job_title``.
"""

import datetime
import random
from typing import Any, Callable, Dict

from faker import Faker


FakeFunc = Callable[[], Any]

_faker = Faker()


def get_faker() -> Faker:
    """Shared Faker instance."""
    return _faker


def _text(method: Callable[[], Any]) -> FakeFunc:
    """Wrap a generator so dates and other objects come out as strings."""
    def generate() -> Any:
        value = method()
        if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
            return value.isoformat()
        if isinstance(value, (str, int, float, bool)):
            return value
        return str(value)
    return generate


def _build_fake_functions(fake: Faker) -> Dict[str, FakeFunc]:
    table = {
        # person
        'person.name': fake.name,
        'person.first_name': fake.first_name,
        'person.last_name': fake.last_name,
        'person.title': fake.prefix,
        'person.suffix': fake.suffix,
        'person.ssn': fake.ssn,
        'person.gender': lambda: random.choice(['male', 'female']),

        # company
        'company.name': fake.company,
        'company.job_title': fake.job,
        'company.catch_phrase': fake.catch_phrase,
        'company.bs': fake.bs,
        'company.suffix': fake.company_suffix,

        # internet
        'internet.email': fake.email,
        'internet.free_email': fake.free_email,
        'internet.company_email': fake.company_email,
        'internet.user': fake.user_name,
        'internet.user_name': fake.user_name,
        'internet.password': fake.password,
        'internet.domain': fake.domain_name,
        'internet.domain_name': fake.domain_name,
        'internet.hostname': fake.hostname,
        'internet.url': fake.url,
        'internet.uri': fake.uri,
        'internet.slug': fake.slug,
        'internet.ipv4': fake.ipv4,
        'internet.ipv6': fake.ipv6,
        'internet.mac_address': fake.mac_address,
        'internet.http_method': lambda: random.choice(['GET', 'POST', 'PUT', 'PATCH', 'DELETE']),
        'internet.image_url': fake.image_url,

        # address
        'address.address': fake.address,
        'address.street_address': fake.street_address,
        'address.street_name': fake.street_name,
        'address.building_number': fake.building_number,
        'address.city': fake.city,
        'address.state': fake.state,
        'address.country': fake.country,
        'address.country_code': fake.country_code,
        'address.post_code': fake.postcode,
        'address.postcode': fake.postcode,
        'address.latitude': lambda: float(fake.latitude()),
        'address.longitude': lambda: float(fake.longitude()),

        # phone
        'phone.number': fake.phone_number,
        'phone.msisdn': fake.msisdn,

        # identifiers
        'uuid.v4': fake.uuid4,
        'u_u_i_d.hyphenated': fake.uuid4,
        'hash.md5': fake.md5,
        'hash.sha1': fake.sha1,
        'hash.sha256': fake.sha256,
        'isbn.isbn13': fake.isbn13,
        'barcode.ean13': fake.ean13,

        # text
        'lorem.word': fake.word,
        'lorem.sentence': fake.sentence,
        'lorem.paragraph': fake.paragraph,
        'lorem.text': fake.text,

        # time
        'time.date': fake.date,
        'time.iso8601': fake.iso8601,
        'time.date_time': fake.date_time,
        'time.time': fake.time,
        'time.year': lambda: int(fake.year()),
        'time.month_name': fake.month_name,
        'time.day_of_week': fake.day_of_week,
        'time.timezone': fake.timezone,
        'time.unix': fake.unix_time,

        # payment
        'payment.credit_card_number': fake.credit_card_number,
        'payment.credit_card_type': fake.credit_card_provider,
        'payment.credit_card_expire': fake.credit_card_expire,
        'payment.iban': fake.iban,
        'currency.code': fake.currency_code,
        'currency.name': fake.currency_name,
        'currency.price': lambda: round(random.uniform(1, 1000), 2),

        # misc
        'color.name': fake.color_name,
        'color.hex': fake.hex_color,
        'color.rgb': fake.rgb_color,
        'file.name': fake.file_name,
        'file.extension': fake.file_extension,
        'file.mime_type': fake.mime_type,
        'user_agent.user_agent': fake.user_agent,
        'language.code': fake.language_code,
        'language.locale': fake.locale,
        'boolean.bool': fake.pybool,
        'number.int': lambda: fake.random_int(1, 1000000),
        'number.float': lambda: round(random.uniform(1, 1000), 4),
        'number.digit': fake.random_digit,
    }
    return {name: _text(method) for name, method in table.items()}


FAKE_FUNCTIONS: Dict[str, FakeFunc] = _build_fake_functions(_faker)


def _botify(pattern: str) -> FakeFunc:
    return lambda: _faker.bothify(pattern)


def _echo(value: str) -> FakeFunc:
    return lambda: value


def _int_between(low: str, high: str) -> FakeFunc:
    low_value, high_value = int(low), int(high)
    if low_value > high_value:
        low_value, high_value = high_value, low_value
    return lambda: random.randint(low_value, high_value)


def _float_between(low: str, high: str) -> FakeFunc:
    low_value, high_value = float(low), float(high)
    return lambda: random.uniform(low_value, high_value)


FUNC_FACTORIES_1_ARG: Dict[str, Callable[[str], FakeFunc]] = {
    'botify': _botify,
    'echo': _echo,
}

FUNC_FACTORIES_2_ARGS: Dict[str, Callable[[str, str], FakeFunc]] = {
    'int_between': _int_between,
    'float_between': _float_between,
}


def get_fake_functions() -> Dict[str, FakeFunc]:
    """All named zero-argument generators."""
    return dict(FAKE_FUNCTIONS)


def fake_value(name: str) -> Any:
    """
    Generate one value by generator name.

    Raises:
        KeyError: If there is no generator with that name
    """
    return FAKE_FUNCTIONS[name]()
