"""
Unit tests for the OpenWeather source.
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from temperature.weather import (
    CancellationToken,
    Coordinate,
    OpenWeatherSource,
    OperationCancelledError,
    SourceError,
)


@pytest.fixture
def coordinate():
    return Coordinate(latitude=55.75, longitude=37.61)


def _mock_session(status=200, payload=None, text=""):
    """Build an aiohttp session mock whose get() yields one response."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=text)

    request_ctx = MagicMock()
    request_ctx.__aenter__ = AsyncMock(return_value=response)
    request_ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.closed = False
    session.get = MagicMock(return_value=request_ctx)
    return session


def _hourly(*temps):
    return {"hourly": [{"temp": t} for t in temps]}


def test_extract_temperature_uses_daytime_hours(coordinate):
    # Hours 3..11 hold 10.0, everything else is noise
    temps = [100.0] * 3 + [10.0] * 9 + [-100.0] * 12

    value = OpenWeatherSource.extract_temperature(coordinate, _hourly(*temps))

    assert value == pytest.approx(10.0)


@pytest.mark.parametrize("hours", [1, 3, 11])
def test_extract_temperature_rejects_short_series(coordinate, hours):
    with pytest.raises(SourceError) as exc_info:
        OpenWeatherSource.extract_temperature(coordinate, _hourly(*([1.0] * hours)))

    assert "need 12" in str(exc_info.value)


def test_extract_temperature_accepts_exactly_twelve_hours(coordinate):
    temps = [100.0] * 3 + [4.0] * 9

    assert OpenWeatherSource.extract_temperature(coordinate, _hourly(*temps)) == pytest.approx(4.0)


def test_extract_temperature_rejects_empty_payload(coordinate):
    with pytest.raises(SourceError):
        OpenWeatherSource.extract_temperature(coordinate, {"hourly": []})


def test_extract_temperature_rejects_malformed_payload(coordinate):
    with pytest.raises(SourceError):
        OpenWeatherSource.extract_temperature(coordinate, {"hourly": [{"humidity": 80}]})


@pytest.mark.asyncio
async def test_fetch_sends_expected_request(coordinate):
    session = _mock_session(payload=_hourly(*([5.0] * 24)))
    source = OpenWeatherSource("secret", session=session)
    when = datetime.now() - timedelta(days=1)

    value = await source.fetch(coordinate, when, CancellationToken())

    assert value == pytest.approx(5.0)
    args, kwargs = session.get.call_args
    assert args[0] == OpenWeatherSource.BASE_URL
    assert kwargs["params"] == {
        "lat": 55.75,
        "lon": 37.61,
        "dt": int(when.timestamp()),
        "appid": "secret",
        "units": "metric",
    }


@pytest.mark.asyncio
async def test_fetch_non_success_status_raises_source_error(coordinate):
    session = _mock_session(status=401, text='{"cod":401, "message": "Invalid API key"}')
    source = OpenWeatherSource("bad", session=session)

    with pytest.raises(SourceError) as exc_info:
        await source.fetch(coordinate, datetime.now() - timedelta(days=1), CancellationToken())

    assert exc_info.value.coordinate == coordinate
    assert "401" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_client_error_raises_source_error(coordinate):
    session = MagicMock()
    session.closed = False
    session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
    source = OpenWeatherSource("key", session=session)

    with pytest.raises(SourceError):
        await source.fetch(coordinate, datetime.now() - timedelta(days=1), CancellationToken())


@pytest.mark.asyncio
async def test_fetch_rejects_dates_beyond_history(coordinate):
    session = _mock_session(payload=_hourly(1.0))
    source = OpenWeatherSource("key", session=session)

    with pytest.raises(SourceError):
        await source.fetch(coordinate, datetime.now() - timedelta(days=5), CancellationToken())
    session.get.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_aborts_when_token_fires(coordinate):
    source = OpenWeatherSource("key")
    token = CancellationToken()

    async def hanging_request(*args):
        await asyncio.sleep(3600)

    asyncio.get_running_loop().call_later(0.05, token.cancel)
    with patch.object(source, "_request", side_effect=hanging_request):
        with pytest.raises(OperationCancelledError):
            await asyncio.wait_for(
                source.fetch(coordinate, datetime.now() - timedelta(days=1), token),
                timeout=1.0
            )


@pytest.mark.asyncio
async def test_check_connection_raises_on_failure():
    session = _mock_session(status=500, text="Internal error")
    source = OpenWeatherSource("key", session=session)

    with pytest.raises(SourceError):
        await source.check_connection()
