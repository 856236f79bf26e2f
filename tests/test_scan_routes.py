from io import BytesIO

import openai

from conftest import KNOWN_SERIAL, FakeVisionClient


def _upload(client, data, name="label.png"):
    return client.post(
        "/scan",
        data={"photo": (BytesIO(data), name)},
        content_type="multipart/form-data",
    )


def test_scan_decodes_and_records(make_app, history, png_bytes):
    vision = FakeVisionClient('{"brand": "Acme", "model": "A1502", "serial": "C02N412ADHJQ"}')
    response = _upload(make_app(vision).test_client(), png_bytes)
    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert "Quanta Computer" in body
    assert "Read from label: Acme A1502" in body
    assert [e.serial_number for e in history.items] == [KNOWN_SERIAL]


def test_scan_without_photo(client):
    response = client.post("/scan", data={}, content_type="multipart/form-data")
    assert "No image uploaded." in response.get_data(as_text=True)


def test_scan_unreadable_image(client):
    body = _upload(client, b"garbage").get_data(as_text=True)
    assert "Unreadable image" in body
    assert "Manual Entry" in body


def test_scan_ocr_fallback(make_app, history, png_bytes):
    vision = FakeVisionClient("no idea", "**Model** A1502\n\nC02N412ADHJQ")
    body = _upload(make_app(vision).test_client(), png_bytes).get_data(as_text=True)
    assert "Could not automatically find a serial number" in body
    assert "<strong>Model</strong>" in body
    assert len(history) == 0


def test_scan_bad_serial_prefills_entry(make_app, history, png_bytes):
    vision = FakeVisionClient('{"brand": "", "model": "", "serial": "12345"}')
    body = _upload(make_app(vision).test_client(), png_bytes).get_data(as_text=True)
    assert "Enter a Serial Number" in body
    assert 'value="12345"' in body
    assert len(history) == 0


def test_scan_vision_error(make_app, png_bytes):
    vision = FakeVisionClient(openai.OpenAIError("rate limited"))
    body = _upload(make_app(vision).test_client(), png_bytes).get_data(as_text=True)
    assert "Vision model error: rate limited" in body
