import pytest

from catalog import llm_logic
from catalog.llm_logic import (
    AttributeEnricher,
    EnrichmentServiceError,
    _parse_strict_json,
    build_enrichment_prompt,
    eligible_attributes,
)
from catalog.models import AttributeType
from fakes import FakeOpenAI, bad_request, connection_error

IMAGE = "https://example.com/noodles.webp"


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(llm_logic.time, "sleep", lambda s: None)


def test_eligible_attributes_only_required_and_empty(make_attribute, make_product):
    color = make_attribute("Color")
    material = make_attribute("Material")
    tags = make_attribute("Tags", AttributeType.MULTIPLE_SELECT, options=["a"])
    weight = make_attribute("Item Weight", AttributeType.MEASURE, unit="G")
    optional = make_attribute("Notes", is_required=False)
    product = make_product(attributes={"Color": "Blue", "Tags": [], "Item Weight": {}})

    result = eligible_attributes(product.attributes, [color, material, tags, weight, optional])
    assert [a.name for a in result] == ["Material", "Tags", "Item Weight"]


def test_prompt_lists_facts_types_units_and_options(make_attribute, make_product):
    attrs = [
        make_attribute("Item Weight", AttributeType.MEASURE, unit="G"),
        make_attribute("Storage Requirements", AttributeType.SINGLE_SELECT, options=["Dry Storage", "Deep Frozen"]),
    ]
    product = make_product(barcode=None)
    prompt = build_enrichment_prompt(product, attrs)

    assert "Product Name: Instant rice fettuccine" in prompt
    assert "Brand: Koka" in prompt
    assert "Barcode: Unknown" in prompt
    assert "- Item Weight (Type: MEASURE) with unit: G" in prompt
    assert "- Storage Requirements (Type: SINGLE_SELECT) with options: [Dry Storage, Deep Frozen]" in prompt
    assert "use null" in prompt
    assert "Product Images" not in prompt


def test_parse_strict_json_accepts_fenced_output():
    assert _parse_strict_json('```json\n{"Color": "Red"}\n```') == {"Color": "Red"}


@pytest.mark.parametrize("raw", ["", None, "not json", "[1, 2]"])
def test_parse_strict_json_rejects_non_objects(raw):
    with pytest.raises(EnrichmentServiceError):
        _parse_strict_json(raw)


def test_text_mode_without_images(make_attribute, make_product):
    color = make_attribute("Color")
    product = make_product(images=["not-a-url", "ftp://example.com/x.png"])
    fake = FakeOpenAI([{"Color": "Red"}])

    result = AttributeEnricher(fake, model="text-model").enrich(product, [color])

    assert result == {"Color": "Red"}
    assert len(fake.chat_calls) == 1 and not fake.responses_calls
    call = fake.chat_calls[0]
    assert call["model"] == "text-model"
    assert call["response_format"] == {"type": "json_object"}


def test_vision_mode_sends_valid_images_only(make_attribute, make_product):
    color = make_attribute("Color")
    data_url = "data:image/png;base64,iVBORw0KGgo="
    product = make_product(images=[IMAGE, "bogus", data_url])
    fake = FakeOpenAI([{"Color": "Red"}])

    AttributeEnricher(fake, vision_model="vision-model", image_detail="low").enrich(product, [color])

    assert len(fake.responses_calls) == 1 and not fake.chat_calls
    call = fake.responses_calls[0]
    assert call["model"] == "vision-model"
    user_content = call["input"][1]["content"]
    images = [part["image_url"] for part in user_content if part["type"] == "input_image"]
    assert images == [IMAGE, data_url]
    assert "Product Images: 2 attached" in user_content[0]["text"]


def test_vision_bad_request_falls_back_to_text(make_attribute, make_product):
    color = make_attribute("Color")
    product = make_product(images=[IMAGE])
    fake = FakeOpenAI([bad_request(), {"Color": "Green"}])

    assert AttributeEnricher(fake).enrich(product, [color]) == {"Color": "Green"}
    assert len(fake.responses_calls) == 1
    assert len(fake.chat_calls) == 1


def test_merge_keeps_existing_and_drops_invalid(make_attribute, make_product):
    attrs = [
        make_attribute("Color"),
        make_attribute("Items per Package", AttributeType.NUMBER),
        make_attribute("Item Weight", AttributeType.MEASURE, unit="G"),
        make_attribute("Material"),
    ]
    product = make_product(attributes={"Color": "Blue", "Legacy": "kept"})
    fake = FakeOpenAI([{
        "Color": "Red",
        "Items per Package": "lots",
        "Item Weight": {"value": "150", "unit": "g"},
        "Material": None,
    }])

    result = AttributeEnricher(fake).enrich(product, attrs)

    assert result == {
        "Color": "Blue",
        "Legacy": "kept",
        "Item Weight": {"value": 150, "unit": "g"},
    }


def test_no_eligible_attributes_skips_the_service(make_attribute, make_product):
    color = make_attribute("Color")
    product = make_product(attributes={"Color": "Blue"})
    fake = FakeOpenAI()

    assert AttributeEnricher(fake).enrich(product, [color]) == {"Color": "Blue"}
    assert fake.call_count == 0


def test_transient_errors_are_retried(make_attribute, make_product):
    color = make_attribute("Color")
    product = make_product()
    fake = FakeOpenAI([connection_error(), {"Color": "Red"}])

    assert AttributeEnricher(fake, max_retries=3).enrich(product, [color]) == {"Color": "Red"}
    assert len(fake.chat_calls) == 2


def test_retries_exhausted_raise_service_error(make_attribute, make_product):
    color = make_attribute("Color")
    product = make_product()
    fake = FakeOpenAI([connection_error(), connection_error()])

    with pytest.raises(EnrichmentServiceError):
        AttributeEnricher(fake, max_retries=2).enrich(product, [color])
    assert len(fake.chat_calls) == 2


def test_empty_response_is_a_service_error(make_attribute, make_product):
    color = make_attribute("Color")
    product = make_product()

    with pytest.raises(EnrichmentServiceError):
        AttributeEnricher(FakeOpenAI([""])).enrich(product, [color])
