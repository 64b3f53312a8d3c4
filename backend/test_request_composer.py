import pytest

from app.core.exceptions import InvalidInput
from app.services.image_service import ImageInput
from app.services.request_composer import RequestComposer


@pytest.fixture
def composer():
    return RequestComposer(model="gemini-test", language="French")


def test_text_only_request(composer):
    request = composer.compose("The Eiffel Tower is in Rome")

    assert request.model == "gemini-test"
    assert len(request.contents) == 1
    parts = request.contents[0].parts
    assert len(parts) == 1
    assert "The Eiffel Tower is in Rome" in parts[0].text
    assert request.contents[0].role == "user"


def test_generation_config(composer):
    config = composer.compose("claim").config

    assert config.temperature == 0.1
    assert config.top_p == 0.95
    assert config.top_k == 40
    assert config.max_output_tokens == 2048
    assert config.tools[0].google_search is not None
    assert "SOURCES_DETAILS" in config.system_instruction
    assert "CONFIDENCE" in config.system_instruction
    assert "French" in config.system_instruction


def test_image_request_puts_image_first(composer):
    image = ImageInput(data=b"\x89PNG fake", mime_type="image/png")
    request = composer.compose("Is this real?", image=image, image_context="Software: Midjourney")

    parts = request.contents[0].parts
    assert len(parts) == 2
    assert parts[0].inline_data.mime_type == "image/png"
    assert parts[0].inline_data.data == b"\x89PNG fake"
    assert "Is this real?" in parts[1].text
    assert "Software: Midjourney" in parts[1].text


def test_image_without_claim(composer):
    request = composer.compose("", image=ImageInput(data=b"img", mime_type="image/jpeg"))
    parts = request.contents[0].parts
    assert len(parts) == 2
    assert "Context" not in parts[1].text


@pytest.mark.parametrize("claim", ["", "   ", None])
def test_empty_input_rejected(composer, claim):
    with pytest.raises(InvalidInput):
        composer.compose(claim)


def test_empty_image_bytes_rejected(composer):
    with pytest.raises(InvalidInput):
        composer.compose("", image=ImageInput(data=b"", mime_type="image/png"))
