from unittest.mock import MagicMock, patch

import requests

from tutoring_scheduler import availability_client, config


@patch("tutoring_scheduler.availability_client.config.AVAILABILITY_API_BASE", "https://api.example.com/availability/")
def test_build_url():
    assert availability_client.build_url("t-17") == "https://api.example.com/availability/slots/t-17"


@patch("tutoring_scheduler.availability_client.requests.get")
def test_fetch_availability_success(mock_get):
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = {"isDefaultAvailability": True, "timezone": "Asia/Dubai"}
    mock_get.return_value = mock_response

    data = availability_client.fetch_availability("t-17")

    assert data == {"isDefaultAvailability": True, "timezone": "Asia/Dubai"}
    _, kwargs = mock_get.call_args
    assert kwargs["timeout"] == config.REQUEST_TIMEOUT
    assert kwargs["headers"]["Accept"] == config.COMMON_HEADERS["Accept"]


@patch("tutoring_scheduler.availability_client.requests.get")
def test_fetch_availability_unwraps_data_envelope(mock_get):
    mock_response = MagicMock()
    mock_response.json.return_value = {"success": True, "data": {"timezone": "UTC", "slotsByDay": {}}}
    mock_get.return_value = mock_response

    assert availability_client.fetch_availability("t-17") == {"timezone": "UTC", "slotsByDay": {}}


@patch("tutoring_scheduler.availability_client.config.AVAILABILITY_API_TOKEN", "secret")
@patch("tutoring_scheduler.availability_client.requests.get")
def test_fetch_availability_sends_token(mock_get):
    mock_get.return_value = MagicMock()

    availability_client.fetch_availability("t-17")

    _, kwargs = mock_get.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer secret"


@patch("tutoring_scheduler.availability_client.requests.get")
def test_fetch_availability_http_error(mock_get):
    mock_response = MagicMock()
    mock_response.status_code = 404
    mock_response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
    mock_get.return_value = mock_response

    assert availability_client.fetch_availability("missing") is None


@patch("tutoring_scheduler.availability_client.requests.get")
def test_fetch_availability_network_error(mock_get):
    mock_get.side_effect = requests.ConnectionError("unreachable")
    assert availability_client.fetch_availability("t-17") is None


@patch("tutoring_scheduler.availability_client.fetch_availability")
def test_get_availability_profile(mock_fetch):
    mock_fetch.return_value = {
        "timezone": "Asia/Dubai",
        "slotsByDay": {"1": [{"startTime": "09:00", "endTime": "17:00"}]},
    }

    profile = availability_client.get_availability_profile("t-17")

    assert profile.timezone == "Asia/Dubai"
    assert len(profile.windows_for(1)) == 1


@patch("tutoring_scheduler.availability_client.fetch_availability")
def test_get_availability_profile_failures(mock_fetch):
    mock_fetch.return_value = None
    assert availability_client.get_availability_profile("t-17") is None

    mock_fetch.return_value = {"timezone": "UTC", "slotsByDay": {"9": []}}
    assert availability_client.get_availability_profile("t-17") is None
