import re

import pytest

from webguard.cors import Cors
from webguard.cors_errors import WildcardOrigin
from webguard.cors_middleware import is_request_preflight
from webguard.cors_policy import VARY_VALUE
from webguard.http import Request, Response

ACAO = "access-control-allow-origin"
ACRM = "access-control-request-method"
ACRH = "access-control-request-headers"


async def ok_service(request):
    return Response(status=200)


def status_service(status):
    async def service(request):
        return Response(status=status)

    return service


def vary_accept_service(request):
    return Response(status=200, headers={"Vary": "Accept"})


async def disposition_service(request):
    return Response(status=200, headers={"Content-Disposition": "test disposition"})


def unknown_suffix_fn(origin, request):
    assert origin == request.headers["origin"]
    return request.headers["origin"].endswith(".unknown.com")


def test_wildcard_origin():
    with pytest.raises(WildcardOrigin):
        Cors().allowed_origin("*")


def test_is_request_preflight():
    assert is_request_preflight(Request(method="OPTIONS", headers={ACRM: "GET"}))
    assert not is_request_preflight(Request(method="OPTIONS"))
    assert not is_request_preflight(Request(method="GET", headers={ACRM: "GET"}))
    assert not is_request_preflight(Request(method="OPTIONS", headers={ACRM: "G E T"}))


@pytest.mark.asyncio
async def test_sync_service_is_supported():
    mw = Cors().allowed_origin("https://example.com").wrap(lambda req: Response(status=204))
    resp = await mw(Request(headers={"Origin": "https://example.com"}))
    assert resp.status == 204
    assert resp.headers[ACAO] == "https://example.com"


@pytest.mark.asyncio
async def test_restrictive_defaults():
    mw = Cors().wrap(ok_service)
    resp = await mw(Request(headers={"Origin": "https://www.example.com"}))
    assert resp.status == 200
    assert ACAO not in resp.headers


@pytest.mark.asyncio
async def test_options_no_origin():
    def dnt_fn(origin, request):
        assert origin == request.headers["origin"]
        return "dnt" in request.headers

    mw = Cors().allow_any_origin().allowed_origin_fn(dnt_fn).wrap(ok_service)

    resp = await mw(Request(headers={"Origin": "http://example.com"}))
    assert resp.headers.get(ACAO) is None

    resp = await mw(Request(headers={"Origin": "http://example.com", "DNT": "1"}))
    assert resp.headers.get(ACAO) == "http://example.com"


@pytest.mark.asyncio
async def test_not_allowed_origin_fn():
    mw = (
        Cors()
        .allowed_origin("https://www.example.com")
        .allowed_origin_fn(unknown_suffix_fn)
        .wrap(ok_service)
    )
    resp = await mw(Request(headers={"Origin": "https://www.example.com"}))
    assert resp.headers.get(ACAO) == "https://www.example.com"

    resp = await mw(Request(headers={"Origin": "https://www.known.com"}))
    assert resp.headers.get(ACAO) is None


@pytest.mark.asyncio
async def test_allowed_origin_fn():
    mw = (
        Cors()
        .allowed_origin("https://www.example.com")
        .allowed_origin_fn(unknown_suffix_fn)
        .wrap(ok_service)
    )
    resp = await mw(Request(headers={"Origin": "https://www.example.com"}))
    assert resp.headers[ACAO] == "https://www.example.com"

    resp = await mw(Request(headers={"Origin": "https://www.unknown.com"}))
    assert resp.headers.get(ACAO) == "https://www.unknown.com"


@pytest.mark.asyncio
async def test_allowed_origin_fn_with_environment():
    pattern = re.compile(r"https:.+\.unknown\.com")

    def regex_fn(origin, request):
        assert origin == request.headers["origin"]
        return pattern.search(request.headers["origin"]) is not None

    mw = Cors().allowed_origin("https://www.example.com").allowed_origin_fn(regex_fn).wrap(
        ok_service
    )
    resp = await mw(Request(headers={"Origin": "https://www.example.com"}))
    assert resp.headers[ACAO] == "https://www.example.com"

    resp = await mw(Request(headers={"Origin": "https://www.unknown.com"}))
    assert resp.headers.get(ACAO) == "https://www.unknown.com"


@pytest.mark.asyncio
async def test_allow_fn_origin_equals_head_origin():
    def check_fn(origin, request):
        assert origin == request.headers["origin"]
        return True

    mw = (
        Cors()
        .allowed_origin_fn(check_fn)
        .allow_any_method()
        .allow_any_header()
        .wrap(status_service(204))
    )
    resp = await mw(
        Request(method="OPTIONS", headers={"Origin": "https://www.example.com", ACRM: "POST"})
    )
    assert resp.status == 200

    resp = await mw(Request(method="GET", headers={"Origin": "https://www.example.com"}))
    assert resp.status == 204


@pytest.mark.asyncio
async def test_multiple_origins_preflight():
    mw = (
        Cors()
        .allowed_origin("https://example.com")
        .allowed_origin("https://example.org")
        .allowed_methods(["GET"])
        .wrap(ok_service)
    )
    for origin in ("https://example.com", "https://example.org"):
        resp = await mw(Request(method="OPTIONS", headers={"Origin": origin, ACRM: "GET"}))
        assert resp.headers.get(ACAO) == origin


@pytest.mark.asyncio
async def test_multiple_origins():
    mw = (
        Cors()
        .allowed_origin("https://example.com")
        .allowed_origin("https://example.org")
        .allowed_methods(["GET"])
        .wrap(ok_service)
    )
    for origin in ("https://example.com", "https://example.org"):
        resp = await mw(Request(headers={"Origin": origin}))
        assert resp.headers.get(ACAO) == origin


@pytest.mark.asyncio
async def test_preflight():
    mw = (
        Cors()
        .allow_any_origin()
        .send_wildcard()
        .max_age(3600)
        .allowed_methods(["GET", "OPTIONS", "POST"])
        .allowed_headers(["Authorization", "Accept"])
        .allowed_header("Content-Type")
        .wrap(ok_service)
    )

    resp = await mw(
        Request(
            method="OPTIONS",
            headers={"Origin": "https://www.example.com", ACRH: "X-Not-Allowed"},
        )
    )
    assert resp.status == 200

    resp = await mw(
        Request(
            method="OPTIONS",
            headers={
                "Origin": "https://www.example.com",
                ACRM: "POST",
                ACRH: "AUTHORIZATION,ACCEPT",
            },
        )
    )
    assert resp.headers.get(ACAO) == "*"
    assert resp.headers.get("access-control-max-age") == "3600"
    allowed_headers = resp.headers["access-control-allow-headers"]
    for name in ("authorization", "accept", "content-type"):
        assert name in allowed_headers
    methods = resp.headers["access-control-allow-methods"]
    for method in ("POST", "GET", "OPTIONS"):
        assert method in methods

    mw.policy.preflight = False
    resp = await mw(
        Request(
            method="OPTIONS",
            headers={
                "Origin": "https://www.example.com",
                ACRM: "POST",
                ACRH: "AUTHORIZATION,ACCEPT",
            },
        )
    )
    assert resp.status == 200
    assert "access-control-allow-methods" not in resp.headers


@pytest.mark.asyncio
async def test_response():
    exposed = ["Authorization", "Accept"]
    mw = (
        Cors()
        .allow_any_origin()
        .send_wildcard()
        .disable_preflight()
        .max_age(3600)
        .allowed_methods(["GET", "OPTIONS", "POST"])
        .allowed_headers(exposed)
        .expose_headers(exposed)
        .allowed_header("Content-Type")
        .wrap(ok_service)
    )
    resp = await mw(Request(method="OPTIONS", headers={"Origin": "https://www.example.com"}))
    assert resp.headers.get(ACAO) == "*"
    assert resp.headers.get("vary") == VARY_VALUE
    names = [part.strip() for part in resp.headers["access-control-expose-headers"].split(",")]
    for name in exposed:
        assert name.lower() in names

    mw = (
        Cors()
        .allow_any_origin()
        .send_wildcard()
        .disable_preflight()
        .max_age(3600)
        .allowed_methods(["GET", "OPTIONS", "POST"])
        .allowed_headers(exposed)
        .expose_headers(exposed)
        .allowed_header("Content-Type")
        .wrap(vary_accept_service)
    )
    resp = await mw(Request(method="OPTIONS", headers={"Origin": "https://www.example.com"}))
    assert resp.headers["vary"] == "Accept, " + VARY_VALUE

    mw = (
        Cors()
        .disable_vary_header()
        .allowed_methods(["POST"])
        .allowed_origin("https://www.example.com")
        .allowed_origin("https://www.google.com")
        .wrap(ok_service)
    )
    resp = await mw(
        Request(method="OPTIONS", headers={"Origin": "https://www.example.com", ACRM: "POST"})
    )
    assert resp.headers.get(ACAO) == "https://www.example.com"
    assert "vary" not in resp.headers


@pytest.mark.asyncio
async def test_validate_origin():
    mw = Cors().allowed_origin("https://www.example.com").wrap(ok_service)
    resp = await mw(Request(headers={"Origin": "https://www.example.com"}))
    assert resp.status == 200


@pytest.mark.asyncio
async def test_blocks_mismatched_origin_by_default():
    mw = Cors().allowed_origin("https://www.example.com").wrap(ok_service)
    resp = await mw(Request(headers={"Origin": "https://www.example.test"}))
    assert resp.status == 200
    assert ACAO not in resp.headers
    assert "access-control-allow-methods" not in resp.headers


@pytest.mark.asyncio
async def test_mismatched_origin_blocked_when_enabled():
    mw = (
        Cors()
        .allowed_origin("https://www.example.com")
        .block_on_origin_mismatch(True)
        .wrap(ok_service)
    )
    resp = await mw(Request(headers={"Origin": "https://www.unknown.com"}))
    assert resp.status == 400
    assert resp.body == "Origin is not allowed to make this request"
    assert resp.headers["vary"] == VARY_VALUE


@pytest.mark.asyncio
async def test_mismatched_origin_block_turned_off():
    mw = (
        Cors()
        .allow_any_method()
        .allowed_origin("https://www.example.com")
        .block_on_origin_mismatch(False)
        .wrap(ok_service)
    )
    resp = await mw(
        Request(method="OPTIONS", headers={"Origin": "https://wrong.com", ACRM: "POST"})
    )
    assert resp.status == 400
    assert resp.headers.get(ACAO) is None

    resp = await mw(Request(headers={"Origin": "https://wrong.com"}))
    assert resp.status == 200
    assert resp.headers.get(ACAO) is None


@pytest.mark.asyncio
async def test_no_origin_response():
    mw = Cors.permissive().disable_preflight().wrap(ok_service)
    resp = await mw(Request(method="GET"))
    assert resp.headers.get(ACAO) is None

    resp = await mw(Request(method="OPTIONS", headers={"Origin": "https://www.example.com"}))
    assert resp.headers.get(ACAO) == "https://www.example.com"


@pytest.mark.asyncio
async def test_validate_origin_allows_all_origins():
    mw = Cors.permissive().wrap(ok_service)
    resp = await mw(Request(headers={"Origin": "https://www.example.com"}))
    assert resp.status == 200
    assert resp.headers["access-control-allow-credentials"] == "true"


@pytest.mark.asyncio
async def test_vary_header_on_all_handled_responses():
    mw = Cors.permissive().wrap(ok_service)

    resp = await mw(
        Request(method="OPTIONS", headers={"Origin": "https://www.example.com", ACRM: "GET"})
    )
    assert resp.status == 200
    assert "access-control-allow-methods" in resp.headers
    assert resp.headers["vary"] == VARY_VALUE

    resp = await mw(Request(method="PUT", headers={"Origin": "https://www.example.com"}))
    assert resp.status == 200
    assert resp.headers["vary"] == VARY_VALUE

    mw = Cors().allow_any_method().wrap(ok_service)

    resp = await mw(Request(method="PUT", headers={"Origin": "https://www.example.com"}))
    assert resp.status == 200
    assert ACAO not in resp.headers
    assert "access-control-allow-methods" not in resp.headers
    assert resp.headers["vary"] == VARY_VALUE

    resp = await mw(Request(method="PUT"))
    assert resp.status == 200
    assert resp.headers["vary"] == VARY_VALUE


@pytest.mark.asyncio
async def test_allow_any_origin_any_method_any_header():
    mw = Cors().allow_any_origin().allow_any_method().allow_any_header().wrap(ok_service)
    resp = await mw(
        Request(
            method="OPTIONS",
            headers={
                ACRM: "POST",
                ACRH: "content-type",
                "Origin": "https://www.example.com",
            },
        )
    )
    assert resp.status == 200
    assert resp.headers["access-control-allow-headers"] == "content-type"


@pytest.mark.asyncio
async def test_expose_all_request_header_values():
    mw = Cors.permissive().wrap(disposition_service)
    resp = await mw(
        Request(
            headers={
                "Origin": "https://www.example.com",
                ACRM: "POST",
                ACRH: "content-type",
            }
        )
    )
    exposed = resp.headers["access-control-expose-headers"]
    assert "content-disposition" in exposed
    assert "access-control-allow-origin" in exposed


@pytest.mark.asyncio
async def test_private_network_access():
    mw = (
        Cors.permissive()
        .allowed_origin("https://public.site")
        .allow_private_network_access()
        .wrap(disposition_service)
    )
    base = {
        "Origin": "https://public.site",
        ACRM: "POST",
        "Access-Control-Allow-Credentials": "true",
    }
    resp = await mw(Request(headers=dict(base)))
    assert ACAO in resp.headers
    assert "access-control-allow-private-network" not in resp.headers

    resp = await mw(
        Request(headers={**base, "Access-Control-Request-Private-Network": "true"})
    )
    assert ACAO in resp.headers
    assert resp.headers["access-control-allow-private-network"] == "true"


def test_handle_preflight_rejects_bad_method():
    mw = Cors().allowed_origin("https://example.com").allowed_methods(["GET"]).wrap(ok_service)
    resp = mw.handle_preflight(
        Request(method="OPTIONS", headers={"Origin": "https://example.com", ACRM: "PUT"})
    )
    assert resp.status == 400
    assert resp.body == "Requested method is not allowed"


def test_augment_response_skips_origin_when_not_allowed():
    mw = Cors().allowed_origin("https://example.com").wrap(ok_service)
    request = Request(headers={"Origin": "https://example.com"})
    resp = mw.augment_response(False, request, Response(status=200))
    assert ACAO not in resp.headers
    resp = mw.augment_response(True, request, Response(status=200))
    assert resp.headers[ACAO] == "https://example.com"