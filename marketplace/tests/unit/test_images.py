import pytest

from marketplace.catalog.domain.images import ImageReference, normalize_image_reference


@pytest.mark.unit
class TestNormalizeImageReference:
    def test_plain_url(self):
        assert normalize_image_reference(" https://cdn.example.com/a.jpg ") == ImageReference(
            url="https://cdn.example.com/a.jpg"
        )

    def test_object_with_public_id_and_alt(self):
        reference = normalize_image_reference(
            {"url": "https://cdn.example.com/a.jpg", "public_id": "products/a", "alt_text": "Front"}
        )
        assert reference.public_id == "products/a"
        assert reference.alt == "Front"
        assert reference.to_dict() == {"url": "https://cdn.example.com/a.jpg", "public_id": "products/a", "alt": "Front"}

    def test_secure_url_fallback(self):
        assert normalize_image_reference({"secure_url": "https://cdn.example.com/s.jpg"}).url == (
            "https://cdn.example.com/s.jpg"
        )

    def test_list_prefers_primary_entry(self):
        images = [
            "https://cdn.example.com/first.jpg",
            {"url": "https://cdn.example.com/primary.jpg", "is_primary": True},
        ]
        assert normalize_image_reference(images).url == "https://cdn.example.com/primary.jpg"

    def test_list_falls_back_to_first_usable_entry(self):
        images = [{"alt": "no url"}, "", "https://cdn.example.com/second.jpg"]
        assert normalize_image_reference(images).url == "https://cdn.example.com/second.jpg"

    @pytest.mark.parametrize("value", [None, "", [], [{}], {"url": "  "}])
    def test_nothing_usable_returns_none(self, value):
        assert normalize_image_reference(value) is None

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            normalize_image_reference(42)
