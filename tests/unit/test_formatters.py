from decimal import Decimal

import pytest

from backoffice.utils.formatters import generate_slug, money, money_ar, quantize_money
from backoffice.utils.pagination import clamp_limit


@pytest.mark.parametrize('text,expected', [
    ('Café Molido 500g', 'cafe-molido-500g'),
    ('  Bebidas   Frías  ', 'bebidas-frias'),
    ('Ñandú & Cía.', 'nandu-cia'),
    ('a - b -- c', 'a-b-c'),
    ('¡¡!!', ''),
    (None, ''),
])
def test_generate_slug(text, expected):
    assert generate_slug(text) == expected


def test_quantize_money_rounds_half_up():
    assert quantize_money('2.345') == Decimal('2.35')
    assert quantize_money(10) == Decimal('10.00')


def test_money():
    assert money(Decimal('35')) == 35.0
    assert money(None) is None


def test_money_ar():
    assert money_ar(1500) == '$1.500,00'
    assert money_ar(Decimal('35.5')) == '$35,50'
    assert money_ar(None) == '-'


def test_clamp_limit():
    assert clamp_limit(None, default=50, maximum=500) == 50
    assert clamp_limit('20', default=50, maximum=500) == 20
    assert clamp_limit('abc', default=50, maximum=500) == 50
    assert clamp_limit(0, default=50, maximum=500) == 50
    assert clamp_limit(10_000, default=50, maximum=500) == 500
