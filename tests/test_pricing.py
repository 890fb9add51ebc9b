from decimal import Decimal

import pytest

from catalog.gst import GST_ENABLED_KEY, GstSettings, cgst_key, scoped_key, sgst_key
from catalog.pricing import (
    ORDER_TYPE_KEYS, ORDER_TYPE_LABELS, GstRate, build_pricing_matrix, calculate_pricing,
    get_breakdown_from_metadata, gst_config_for, matrix_fingerprint, metadata_is_current, order_type_key,
    price_definition_for, price_item, to_decimal,
)

D = Decimal
DINING_ONLY = {'dining': {'cgst': 2.5, 'sgst': 2.5}}


def test_inclusive_price_is_split_into_base_and_tax():
    breakdown = calculate_pricing(105, 2.5, 2.5, includes_tax=True)
    assert breakdown.base_price == D('100.00')
    assert breakdown.cgst_amount == D('2.50')
    assert breakdown.sgst_amount == D('2.50')
    assert breakdown.gst_value == D('5.00')
    assert breakdown.final_price == D('105.00')
    assert breakdown.price_includes_tax is True


def test_exclusive_price_is_built_up():
    breakdown = calculate_pricing(100, 9, 9, includes_tax=False)
    assert breakdown.base_price == D('100.00')
    assert breakdown.cgst_amount == D('9.00')
    assert breakdown.gst_value == D('18.00')
    assert breakdown.final_price == D('118.00')
    assert breakdown.price_includes_tax is False


def test_inclusive_rounding_is_half_up():
    breakdown = calculate_pricing(105, 9, 9)
    # 105 / 1.18 = 88.983...
    assert breakdown.base_price == D('88.98')
    assert breakdown.cgst_amount == D('8.01')
    assert breakdown.final_price == D('105.00')


@pytest.mark.parametrize('includes_tax', [True, False])
def test_zero_rate_leaves_the_amount_alone(includes_tax):
    breakdown = calculate_pricing('49.99', 0, 0, includes_tax)
    assert breakdown.base_price == breakdown.final_price == D('49.99')
    assert breakdown.gst_value == D('0.00')


AMOUNTS = ['0', '0.01', '0.99', '1.05', '123.45', '999999.99']
RATES = [(0, 0), (2.5, 2.5), ('0.25', '6.75'), (9, 9), (50, 50), (100, 100)]


@pytest.mark.parametrize('amount', AMOUNTS)
@pytest.mark.parametrize('cgst, sgst', RATES)
def test_exclusive_then_inclusive_gets_back_to_the_base(amount, cgst, sgst):
    built = calculate_pricing(amount, cgst, sgst, includes_tax=False)
    split = calculate_pricing(built.final_price, cgst, sgst, includes_tax=True)
    assert abs(split.base_price - D(amount)) <= D('0.01')


@pytest.mark.parametrize('amount', AMOUNTS + ['0.10', '0.07'])
@pytest.mark.parametrize('cgst, sgst', RATES)
@pytest.mark.parametrize('includes_tax', [True, False])
def test_tax_total_is_the_sum_of_its_components(amount, cgst, sgst, includes_tax):
    breakdown = calculate_pricing(amount, cgst, sgst, includes_tax)
    assert breakdown.gst_value == breakdown.cgst_amount + breakdown.sgst_amount


def test_tiny_exclusive_amount_reports_no_tax_it_cannot_split():
    breakdown = calculate_pricing('0.10', 2.5, 2.5, includes_tax=False)
    assert breakdown.cgst_amount == breakdown.sgst_amount == D('0.00')
    assert breakdown.gst_value == D('0.00')


def test_junk_amounts_price_as_zero():
    breakdown = calculate_pricing('abc', 2.5, 2.5)
    assert breakdown.final_price == D('0.00')


def test_to_decimal():
    assert to_decimal(' 12.5 ') == D('12.5')
    assert to_decimal(None) == D('0')
    assert to_decimal('') == D('0')
    assert to_decimal(True) == D('0')
    assert to_decimal('NaN') == D('0')
    assert to_decimal('Infinity') == D('0')
    assert to_decimal('x', default=None) is None


@pytest.mark.parametrize('label, key', [
    ('Dining', 'dining'),
    ('Dine In', 'dining'),
    ('Takeaway', 'takeaway'),
    ('OnlineOrder', 'onlineorder'),
    ('Online Order', 'onlineorder'),
    ('something else', 'dining'),
    (None, 'dining'),
])
def test_order_type_key(label, key):
    assert order_type_key(label) == key


def test_matrix_lookup_matches_direct_calculation():
    config = {'dining': {'cgst': 2.5, 'sgst': 2.5}, 'Online Order': {'cgst': 9, 'sgst': 9}}
    matrix = build_pricing_matrix({'default': 105, 'sizes': {'half': 60}}, config, includes_tax=True)

    assert set(matrix['order_types']) == {'dining', 'onlineorder'}
    assert matrix['source_price_type'] == 'final'
    assert get_breakdown_from_metadata(matrix, 'Dining') == calculate_pricing(105, 2.5, 2.5, True)
    assert get_breakdown_from_metadata(matrix, 'OnlineOrder', 'half') == calculate_pricing(60, 9, 9, True)


FULL_CONFIG = {
    'dining': {'cgst': 2.5, 'sgst': 2.5},
    'takeaway': {'cgst': '0.25', 'sgst': '6.75'},
    'onlineorder': {'cgst': 9, 'sgst': 9},
}


@pytest.mark.parametrize('order_type', ORDER_TYPE_KEYS)
@pytest.mark.parametrize('includes_tax', [True, False])
@pytest.mark.parametrize('size_key, amount', [(None, '105'), ('half', '59.99'), ('full', '0.01'), ('family', '999999.99')])
def test_every_matrix_entry_matches_direct_calculation(order_type, includes_tax, size_key, amount):
    if size_key:
        definition = {'sizes': {size_key: amount}}
    else:
        definition = {'default': amount}
    matrix = build_pricing_matrix(definition, FULL_CONFIG, includes_tax)
    rate = FULL_CONFIG[order_type]

    expected = calculate_pricing(amount, rate['cgst'], rate['sgst'], includes_tax)
    assert get_breakdown_from_metadata(matrix, order_type, size_key) == expected
    assert get_breakdown_from_metadata(matrix, ORDER_TYPE_LABELS[order_type], size_key) == expected


def test_absent_combinations_are_none():
    matrix = build_pricing_matrix({'default': 105}, DINING_ONLY)
    assert get_breakdown_from_metadata(matrix, 'Takeaway') is None
    assert get_breakdown_from_metadata(matrix, 'Dining', 'half') is None
    assert get_breakdown_from_metadata(None, 'Dining') is None
    assert get_breakdown_from_metadata({'order_types': 'broken'}, 'Dining') is None


def test_sized_matrix_has_no_default():
    matrix = build_pricing_matrix({'sizes': {'half': 80, 'full': 150}}, DINING_ONLY, includes_tax=False)
    assert matrix['source_price_type'] == 'base'
    assert get_breakdown_from_metadata(matrix, 'Dining') is None
    assert get_breakdown_from_metadata(matrix, 'Dining', 'full').final_price == D('157.50')


def test_fingerprint_ignores_number_spelling():
    first = matrix_fingerprint({'default': 100}, DINING_ONLY, True)
    assert first == matrix_fingerprint({'default': D('100.00')}, {'Dining': GstRate(D('2.5'), D('2.50'))}, True)
    assert first == matrix_fingerprint({'default': '100.0'}, DINING_ONLY, True)
    assert first != matrix_fingerprint({'default': 100}, DINING_ONLY, False)
    assert first != matrix_fingerprint({'default': 101}, DINING_ONLY, True)


def test_metadata_is_current():
    matrix = build_pricing_matrix({'default': 105}, DINING_ONLY)
    assert metadata_is_current(matrix, {'default': 105}, DINING_ONLY, True)
    assert not metadata_is_current(matrix, {'default': 110}, DINING_ONLY, True)
    assert not metadata_is_current({**matrix, 'version': 0}, {'default': 105}, DINING_ONLY, True)
    assert not metadata_is_current(None, {'default': 105}, DINING_ONLY, True)


def _item(**fields):
    item = {'id': 7, 'price': 105, 'pricing_mode': 'inclusive', 'has_sizes': False, 'sizes': {}, 'gst': {}}
    item.update(fields)
    return item


def test_price_item_reads_a_current_matrix():
    gst = GstSettings()
    item = _item()
    matrix = build_pricing_matrix(price_definition_for(item), gst_config_for(item, gst), True)
    matrix['order_types']['dining']['default']['final_price'] = 999
    item['pricing_metadata'] = matrix

    assert price_item(item, 'Dining', gst=gst).final_price == D('999.00')


def test_price_item_recomputes_from_stale_matrix():
    gst = GstSettings()
    item = _item()
    item['pricing_metadata'] = build_pricing_matrix(price_definition_for(item), gst_config_for(item, gst), True)
    item['price'] = 210

    breakdown = price_item(item, 'Dining', gst=gst)
    assert breakdown.final_price == D('210.00')
    assert breakdown.base_price == D('200.00')


def test_price_item_with_gst_disabled_uses_authored_amount():
    item = _item(price=100, pricing_mode='exclusive')
    breakdown = price_item(item, 'Dining', gst=GstSettings(enabled=False))
    assert breakdown.base_price == breakdown.final_price == D('100.00')
    assert breakdown.gst_value == D('0.00')
    assert breakdown.price_includes_tax is False


def test_price_item_sizes():
    item = _item(price=None, has_sizes=True, sizes={'half': {'price': 80}, 'full': 150})
    assert price_item(item, 'Dining', 'half', GstSettings()).final_price == D('80.00')
    assert price_item(item, 'Dining', 'full', GstSettings()).base_price == D('142.86')
    assert price_item(item, 'Dining', None, GstSettings()) is None
    assert price_item(item, 'Dining', 'quarter', GstSettings()) is None


def test_item_rates_override_branch_defaults():
    item = _item(gst={'takeaway': {'cgst': 6, 'sgst': None}})
    config = gst_config_for(item, GstSettings())
    assert config['takeaway'] == GstRate(D('6'), D('2.5'))
    assert config['dining'] == GstRate(D('2.5'), D('2.5'))


def test_gst_settings_branch_rows_override_global_rows():
    values = {
        cgst_key('dining'): '6',
        sgst_key('dining'): '6',
        scoped_key('b1', cgst_key('dining')): '9',
        GST_ENABLED_KEY: 'true',
        scoped_key('b1', GST_ENABLED_KEY): 'false',
    }
    branch = GstSettings.from_config(values, branch_id='b1')
    assert branch.rate_for('dining') == GstRate(D('9'), D('6'))
    assert branch.rate_for('takeaway') == GstRate(D('2.5'), D('2.5'))
    assert branch.enabled is False

    hotel_wide = GstSettings.from_config(values)
    assert hotel_wide.rate_for('dining') == GstRate(D('6'), D('6'))
    assert hotel_wide.enabled is True
    assert hotel_wide.show_tax_on_bill is True


def test_gst_settings_survive_the_config_table():
    settings = GstSettings(enabled=False, show_tax_on_bill=False)
    assert GstSettings.from_config(settings.to_config()) == settings
