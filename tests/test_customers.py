"""Tests for customer segment dynamics."""
from __future__ import annotations

import pytest

from escape_velocity.actions import ContentLaunch, DevRel, FounderLedSales, PaidAds, ShipFeature
from escape_velocity.catalog import get_catalog
from escape_velocity.customers import CustomerModel, customer_metrics, marketing_effort


def test_marketing_effort_counts_each_channel():
    effort = marketing_effort(
        [PaidAds(budget=3_000.0), ContentLaunch(), DevRel(), FounderLedSales(call_count=4), ShipFeature()]
    )

    assert effort == {"marketing_spend": 9_000.0, "sales_effort": 40.0}


def test_sales_effort_acquires_customers(indie_state):
    model = CustomerModel(get_catalog().segments)

    acquired = model.step(indie_state, [FounderLedSales(call_count=10)])

    assert acquired > 0
    assert sum(segment.active_customers for segment in indie_state.customer_segments) == acquired
    assert all(segment.acquired <= segment.size for segment in indie_state.customer_segments)


def test_no_effort_no_acquisition(indie_state):
    assert CustomerModel(get_catalog().segments).step(indie_state, []) == 0


def test_segment_rates_do_not_compound(indie_state):
    model = CustomerModel(get_catalog().segments)
    model.step(indie_state, [])
    first = [(segment.churn_rate, segment.conversion_rate) for segment in indie_state.customer_segments]
    model.step(indie_state, [])
    second = [(segment.churn_rate, segment.conversion_rate) for segment in indie_state.customer_segments]

    assert first == second
    early = indie_state.customer_segments[0]
    assert early.satisfaction == pytest.approx(67.0)
    assert early.churn_rate == pytest.approx(8.0 * 1.33)


def test_customer_metrics_health(indie_state):
    CustomerModel(get_catalog().segments).step(indie_state, [FounderLedSales(call_count=10)])

    metrics = customer_metrics(indie_state)

    assert metrics.total_customers == metrics.active_customers
    assert metrics.lifetime_value > 0
    assert 0.0 <= metrics.health_score <= 100.0
