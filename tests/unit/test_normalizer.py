"""
Unit tests for the record normalizer
"""

import pytest
from datetime import datetime
from ingestion.transformers.normalizer import RecordNormalizer
from models.base import Source
from core.exceptions import NormalizationError


class TestCompetitorNormalization:
    """Scraped competitor deals"""

    def test_maps_listing_fields(self):
        """Test that listing fields land on the canonical record"""
        normalizer = RecordNormalizer(Source.OFERTA24)

        record = normalizer.normalize({
            "id": "abc-1",
            "dealTitle": "  Pizza for 2  ",
            "sourceUrl": "https://oferta24.example/abc-1",
            "merchantName": "Luigi's",
            "offerPrice": "12.50",
            "originalPrice": 25,
            "totalSold": 130,
            "expiresAt": "2024-03-01T00:00:00Z",
        })

        assert record.source == Source.OFERTA24
        assert record.external_id == "abc-1"
        assert record.name == "Pizza for 2"
        assert record.url == "https://oferta24.example/abc-1"
        assert record.metrics.quantity_sold == 130
        assert record.metrics.offer_price == 12.5
        assert record.metrics.original_price == 25
        assert record.end_at == datetime(2024, 3, 1)
        assert record.extra_metadata["merchantName"] == "Luigi's"

    def test_falls_back_to_source_url_for_identity(self):
        """Test items without id or slug are keyed by their URL"""
        normalizer = RecordNormalizer(Source.RANTANOFERTAS)

        record = normalizer.normalize({"sourceUrl": "https://rantan.example/d/9", "dealTitle": "X"})

        assert record.external_id == "https://rantan.example/d/9"

    @pytest.mark.parametrize("bad_value", [None, "", "n/a", [], {}, float("nan"), True])
    def test_malformed_numbers_become_zero(self, bad_value):
        """Test malformed metrics coerce to 0 instead of failing the item"""
        normalizer = RecordNormalizer(Source.OFERTA24)

        record = normalizer.normalize({"id": "x", "totalSold": bad_value, "offerPrice": bad_value})

        assert record.metrics.quantity_sold == 0
        assert record.metrics.offer_price == 0

    def test_currency_strings_are_parsed(self):
        normalizer = RecordNormalizer(Source.OFERTA24)

        record = normalizer.normalize({"id": "x", "offerPrice": "$1,250.00"})

        assert record.metrics.offer_price == 1250.0

    def test_unparseable_date_becomes_none(self):
        normalizer = RecordNormalizer(Source.OFERTA24)

        record = normalizer.normalize({"id": "x", "expiresAt": "next tuesday"})

        assert record.end_at is None


class TestPartnerNormalization:
    """Partner platform deal metrics"""

    def test_maps_metric_fields(self, partner_metrics):
        """Test partner metrics map onto tracked metrics"""
        normalizer = RecordNormalizer(Source.PARTNER_METRICS)

        record = normalizer.normalize(partner_metrics[0])

        assert record.external_id == "42"
        assert record.name == "Spa day for two"
        assert record.metrics.quantity_sold == 10
        assert record.metrics.net_revenue == 450.5
        assert record.metrics.margin == 0.32
        assert record.start_at == datetime(2024, 1, 10)
        assert record.end_at == datetime(2024, 2, 10)
        assert record.extra_metadata == {"vendor_id": "v-1"}
        assert record.has_sales is True

    def test_zero_deal_id_is_valid(self):
        """Test that 0 is accepted as an identity"""
        normalizer = RecordNormalizer(Source.PARTNER_METRICS)

        record = normalizer.normalize({"deal_id": 0, "deal_name": "Zero"})

        assert record.external_id == "0"
        assert record.has_sales is False


class TestNormalizationErrors:
    """Items that cannot become records"""

    def test_missing_identity_raises(self):
        """Test an item with no extractable id is an item-level error"""
        normalizer = RecordNormalizer(Source.PARTNER_METRICS)

        with pytest.raises(NormalizationError) as exc_info:
            normalizer.normalize({"deal_name": "No id", "quantity_sold": 5})

        assert exc_info.value.context["source"] == "partner_metrics"

    def test_blank_identity_raises(self):
        normalizer = RecordNormalizer(Source.OFERTA24)

        with pytest.raises(NormalizationError):
            normalizer.normalize({"id": "   ", "slug": "", "dealTitle": "Blank"})

    @pytest.mark.parametrize("item", [None, "deal-1", 42, ["id", "x"]])
    def test_non_mapping_item_raises(self, item):
        normalizer = RecordNormalizer(Source.OFERTA24)

        with pytest.raises(NormalizationError):
            normalizer.normalize(item)
