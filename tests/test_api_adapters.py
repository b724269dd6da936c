from __future__ import annotations

import httpx
import pytest

from researchmate_resolver.adapters.api import (
    APIError,
    CrossrefAdapter,
    CrossrefClient,
    CrossrefIeeeAdapter,
    DataCiteAdapter,
    DataCiteClient,
    GoogleBooksAdapter,
    GoogleBooksClient,
    HTTPProviderAdapter,
    OpenAlexAdapter,
    OpenAlexClient,
    OpenAlexIeeeAdapter,
    OpenLibraryAdapter,
    OpenLibraryClient,
    PubMedAdapter,
    PubMedClient,
    SemanticScholarAdapter,
    SemanticScholarClient,
    YouTubeDataAdapter,
    YouTubeDataClient,
    YouTubeOEmbedAdapter,
    YouTubeOEmbedClient,
)
from researchmate_resolver.adapters.api.base import APIDecodeError, extract_error_message
from researchmate_resolver.adapters.api.youtube import format_duration
from researchmate_resolver.core.credentials import Credential
from researchmate_resolver.core.models import UNKNOWN_YEAR, AttemptStatus, BibliographicRecord, BookRecord, CredentialSource, Rejected, VideoRecord

DOI = "10.1038/nature12373"
ISBN = "9780132350884"

CROSSREF_WORK = {
    "message": {
        "DOI": DOI,
        "title": ["Nanometre-scale thermometry in a living cell"],
        "author": [
            {"given": "G.", "family": "Kucsko"},
            {"given": "P. C.", "family": "Maurer"},
        ],
        "container-title": ["Nature"],
        "publisher": "Springer Science and Business Media LLC",
        "published-print": {"date-parts": [[2013, 8, 1]]},
        "volume": "500",
        "issue": "7460",
        "page": "54-58",
        "type": "journal-article",
    }
}


def anonymous(family: str) -> Credential:
    return Credential(family=family, secret="", source=CredentialSource.ANONYMOUS)


def transport_for(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_crossref_parses_work():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["agent"] = request.headers["User-Agent"]
        return httpx.Response(200, json=CROSSREF_WORK)

    adapter = CrossrefAdapter(CrossrefClient(mailto="lab@example.org", transport=transport_for(handler)))

    record = await adapter.attempt(DOI, anonymous("crossref"))

    assert isinstance(record, BibliographicRecord)
    assert record.title == "Nanometre-scale thermometry in a living cell"
    assert [author.full_name for author in record.authors] == ["G. Kucsko", "P. C. Maurer"]
    assert record.authors[1].last_name == "Maurer"
    assert (record.year, record.month, record.day) == ("2013", "08", "01")
    assert record.journal == "Nature"
    assert record.url == f"https://doi.org/{DOI}"
    assert seen["path"] == f"/works/{DOI}"
    assert "mailto:lab@example.org" in seen["agent"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response, status",
    [
        (httpx.Response(404, text="Resource not found."), AttemptStatus.EMPTY),
        (httpx.Response(500, json={"message": "boom"}), AttemptStatus.HTTP_ERROR),
        (httpx.Response(429, json={"error": {"message": "slow down"}}), AttemptStatus.HTTP_ERROR),
        (httpx.Response(200, text="<html>not json</html>"), AttemptStatus.PARSE_ERROR),
        (httpx.Response(200, text=""), AttemptStatus.PARSE_ERROR),
        (httpx.Response(200, json={"status": "ok"}), AttemptStatus.PARSE_ERROR),
    ],
)
async def test_crossref_failures_become_rejections(response, status):
    adapter = CrossrefAdapter(CrossrefClient(transport=transport_for(lambda request: response)))

    outcome = await adapter.attempt(DOI, anonymous("crossref"))

    assert isinstance(outcome, Rejected)
    assert outcome.status == status


@pytest.mark.asyncio
async def test_transport_error_is_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    adapter = CrossrefAdapter(CrossrefClient(transport=transport_for(handler)))

    outcome = await adapter.attempt(DOI, anonymous("crossref"))

    assert outcome.status == AttemptStatus.NETWORK_ERROR
    assert "connection refused" in outcome.detail


@pytest.mark.asyncio
async def test_transport_errors_are_retried_when_configured():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("flaky", request=request)
        return httpx.Response(200, json=CROSSREF_WORK)

    adapter = CrossrefAdapter(CrossrefClient(retries=2, transport=transport_for(handler)))

    record = await adapter.attempt(DOI, anonymous("crossref"))

    assert isinstance(record, BibliographicRecord)
    assert len(calls) == 2


def test_extract_error_message_prefers_provider_text():
    request = httpx.Request("GET", "https://example.org")
    assert extract_error_message(httpx.Response(400, json={"error": {"message": "bad key"}}, request=request)) == "bad key"
    assert extract_error_message(httpx.Response(400, json={"error": "quota"}, request=request)) == "quota"
    assert extract_error_message(httpx.Response(502, text="gateway", request=request)) == "HTTP 502"


@pytest.mark.asyncio
async def test_semantic_scholar_sends_key_only_when_pooled():
    headers = []

    def handler(request: httpx.Request) -> httpx.Response:
        headers.append(request.headers.get("x-api-key"))
        assert request.url.path.endswith(f"/paper/DOI:{DOI}")
        assert "externalIds" in request.url.params["fields"]
        return httpx.Response(
            200,
            json={
                "title": "Nanometre-scale thermometry in a living cell",
                "authors": [{"name": "G. Kucsko"}, {"name": "P. C. Maurer"}, {"name": "N. Y. Yao"}],
                "year": 2013,
                "venue": "Nature",
                "publicationDate": "2013-07-31",
            },
        )

    adapter = SemanticScholarAdapter(SemanticScholarClient(transport=transport_for(handler)))

    pooled = await adapter.attempt(DOI, Credential(family="semantic_scholar", secret="s2-key"))
    await adapter.attempt(DOI, anonymous("semantic_scholar"))

    assert headers == ["s2-key", None]
    assert len(pooled.authors) == 3
    assert (pooled.year, pooled.month, pooled.day) == ("2013", "07", "31")


@pytest.mark.asyncio
async def test_semantic_scholar_without_title_is_empty():
    adapter = SemanticScholarAdapter(SemanticScholarClient(transport=transport_for(lambda request: httpx.Response(200, json={"paperId": "x"}))))

    outcome = await adapter.attempt(DOI, anonymous("semantic_scholar"))

    assert outcome.status == AttemptStatus.EMPTY


@pytest.mark.asyncio
async def test_openalex_parses_work():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/works/doi:{DOI}"
        assert request.url.params["mailto"] == "lab@example.org"
        return httpx.Response(
            200,
            json={
                "title": "Nanometre-scale thermometry in a living cell",
                "doi": f"https://doi.org/{DOI}",
                "publication_date": "2013-07-31",
                "authorships": [{"author": {"display_name": "G. Kucsko"}}, {"author": {}}],
                "primary_location": {"source": {"display_name": "Nature", "host_organization_name": "Springer Nature"}},
                "biblio": {"volume": "500", "issue": "7460", "first_page": "54", "last_page": "58"},
                "type": "article",
            },
        )

    adapter = OpenAlexAdapter(OpenAlexClient(mailto="lab@example.org", transport=transport_for(handler)))

    record = await adapter.attempt(DOI, anonymous("openalex"))

    assert record.doi == DOI
    assert record.pages == "54-58"
    assert record.publisher == "Springer Nature"
    assert [author.full_name for author in record.authors] == ["G. Kucsko", "Unknown Author"]


@pytest.mark.asyncio
async def test_datacite_parses_attributes():
    payload = {
        "data": {
            "attributes": {
                "doi": "10.5281/zenodo.123",
                "titles": [{"title": "Global emissions dataset"}],
                "creators": [{"name": "Doe, Jane", "givenName": "Jane", "familyName": "Doe"}, {"name": "Climate Lab"}],
                "publisher": {"name": "Zenodo"},
                "publicationYear": 2021,
                "types": {"resourceTypeGeneral": "Dataset"},
            }
        }
    }
    adapter = DataCiteAdapter(DataCiteClient(transport=transport_for(lambda request: httpx.Response(200, json=payload))))

    record = await adapter.attempt("10.5281/zenodo.123", anonymous("datacite"))

    assert record.title == "Global emissions dataset"
    assert record.publisher == "Zenodo"
    assert record.year == "2021"
    assert record.type == "Dataset"
    assert [author.full_name for author in record.authors] == ["Jane Doe", "Climate Lab"]


@pytest.mark.asyncio
async def test_datacite_missing_attributes_is_parse_error():
    adapter = DataCiteAdapter(DataCiteClient(transport=transport_for(lambda request: httpx.Response(200, json={"data": None}))))

    outcome = await adapter.attempt("10.5281/zenodo.123", anonymous("datacite"))

    assert outcome.status == AttemptStatus.PARSE_ERROR


@pytest.mark.asyncio
async def test_open_library_resolves_author_keys():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == f"/isbn/{ISBN}.json":
            return httpx.Response(
                200,
                json={
                    "title": "Clean Code",
                    "authors": [{"key": "/authors/OL1A"}, {"key": "/authors/OL2A"}, {}],
                    "publishers": ["Prentice Hall"],
                    "publish_date": "August 2008",
                    "number_of_pages": 464,
                    "covers": [123],
                },
            )
        if request.url.path == "/authors/OL1A.json":
            return httpx.Response(200, json={"name": "Robert C. Martin"})
        return httpx.Response(503, json={"error": "unavailable"})

    adapter = OpenLibraryAdapter(OpenLibraryClient(transport=transport_for(handler)))

    record = await adapter.attempt(ISBN, anonymous("open_library"))

    assert isinstance(record, BookRecord)
    assert record.authors == ("Robert C. Martin", "Unknown Author", "Unknown Author")
    assert record.year == "2008"
    assert record.page_count == 464
    assert record.isbn13 == ISBN
    assert record.cover_url == "https://covers.openlibrary.org/b/id/123-M.jpg"


@pytest.mark.asyncio
async def test_open_library_falls_back_to_search():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/search.json":
            assert request.url.params["isbn"] == ISBN
            return httpx.Response(
                200,
                json={"docs": [{"title": "Clean Code", "author_name": ["Robert C. Martin"], "first_publish_year": 2008, "isbn": ["0132350882", ISBN]}]},
            )
        return httpx.Response(404, json={"error": "notfound"})

    adapter = OpenLibraryAdapter(OpenLibraryClient(transport=transport_for(handler)))

    record = await adapter.attempt(ISBN, anonymous("open_library"))

    assert record.authors == ("Robert C. Martin",)
    assert record.year == "2008"
    assert record.isbn == "0132350882"
    assert record.isbn13 == ISBN


@pytest.mark.asyncio
async def test_open_library_empty_search_is_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/search.json":
            return httpx.Response(200, json={"docs": []})
        return httpx.Response(404)

    adapter = OpenLibraryAdapter(OpenLibraryClient(transport=transport_for(handler)))

    outcome = await adapter.attempt(ISBN, anonymous("open_library"))

    assert outcome.status == AttemptStatus.EMPTY


@pytest.mark.asyncio
async def test_google_books_parses_first_volume():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["q"] == f"isbn:{ISBN}"
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "volumeInfo": {
                            "title": "Clean Code",
                            "authors": ["Robert C. Martin"],
                            "publishedDate": "2008-08-01",
                            "pageCount": 431,
                            "industryIdentifiers": [{"type": "ISBN_10", "identifier": "0132350882"}, {"type": "ISBN_13", "identifier": ISBN}],
                            "imageLinks": {"thumbnail": "http://books.google.com/cover.jpg"},
                        }
                    }
                ]
            },
        )

    adapter = GoogleBooksAdapter(GoogleBooksClient(transport=transport_for(handler)))

    record = await adapter.attempt(ISBN, anonymous("google_books"))

    assert record.title == "Clean Code"
    assert record.year == "2008"
    assert record.page_count == 431
    assert record.isbn13 == ISBN
    assert record.cover_url == "http://books.google.com/cover.jpg"
    assert record.publisher == ""


@pytest.mark.asyncio
async def test_google_books_without_items_is_empty():
    adapter = GoogleBooksAdapter(GoogleBooksClient(transport=transport_for(lambda request: httpx.Response(200, json={"totalItems": 0}))))

    outcome = await adapter.attempt(ISBN, anonymous("google_books"))

    assert outcome.status == AttemptStatus.EMPTY


@pytest.mark.asyncio
async def test_invalid_url_is_a_decode_error():
    client = OpenLibraryClient(transport=transport_for(lambda request: httpx.Response(200, json={})))

    with pytest.raises(APIDecodeError) as excinfo:
        await client.get_author("/authors/OL1A\u0000")

    assert isinstance(excinfo.value, APIError)
    assert "Invalid URL" in str(excinfo.value)


@pytest.mark.asyncio
async def test_open_library_author_key_with_control_character_is_unknown():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == f"/isbn/{ISBN}.json":
            return httpx.Response(200, json={"title": "T", "authors": [{"key": "/authors/OL1A\u0000"}]})
        return httpx.Response(404)

    adapter = OpenLibraryAdapter(OpenLibraryClient(transport=transport_for(handler)))

    record = await adapter.attempt(ISBN, anonymous("open_library"))

    assert isinstance(record, BookRecord)
    assert record.authors == ("Unknown Author",)


class _ExplodingAdapter(HTTPProviderAdapter):
    provider_id = "exploding"

    async def fetch(self, query, credential):
        raise RuntimeError("unexpected failure")


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_parse_error():
    outcome = await _ExplodingAdapter().attempt(DOI, anonymous("exploding"))

    assert isinstance(outcome, Rejected)
    assert outcome.status == AttemptStatus.PARSE_ERROR
    assert "RuntimeError: unexpected failure" in outcome.detail


def test_adapter_without_fetch_cannot_be_instantiated():
    class Incomplete(HTTPProviderAdapter):
        provider_id = "incomplete"

    with pytest.raises(TypeError):
        Incomplete()


PUBMED_SUMMARY = {
    "result": {
        "uids": ["23903748"],
        "23903748": {
            "title": "Nanometre-scale thermometry in a living cell.",
            "authors": [{"name": "Kucsko G"}, {"name": "Maurer PC"}],
            "fulljournalname": "Nature",
            "source": "Nature",
            "pubdate": "2013 Aug 1",
            "volume": "500",
            "issue": "7460",
            "pages": "54-8",
            "articleids": [{"idtype": "pubmed", "value": "23903748"}, {"idtype": "doi", "value": DOI}],
        },
    }
}


@pytest.mark.asyncio
async def test_pubmed_parses_summary_with_doi():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/entrez/eutils/esummary.fcgi"
        assert request.url.params["db"] == "pubmed"
        assert request.url.params["id"] == "23903748"
        return httpx.Response(200, json=PUBMED_SUMMARY)

    adapter = PubMedAdapter(PubMedClient(transport=transport_for(handler)))

    record = await adapter.attempt("23903748", anonymous("pubmed"))

    assert record.title == "Nanometre-scale thermometry in a living cell"
    assert record.doi == DOI
    assert record.year == "2013"
    assert record.journal == "Nature"
    assert record.authors[1].last_name == "Maurer"
    assert record.authors[1].first_name == "PC"
    assert record.url == f"https://doi.org/{DOI}"


@pytest.mark.asyncio
async def test_pubmed_unknown_id_is_empty():
    payload = {"result": {"uids": [], "1": {"uid": "1", "error": "cannot get document summary"}}}
    adapter = PubMedAdapter(PubMedClient(transport=transport_for(lambda request: httpx.Response(200, json=payload))))

    outcome = await adapter.attempt("1", anonymous("pubmed"))

    assert outcome.status == AttemptStatus.EMPTY


@pytest.mark.asyncio
async def test_crossref_ieee_matches_document_number_suffix():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/works"
        assert request.url.params["filter"] == "member:263"
        assert request.url.params["query.bibliographic"] == "8578097"
        return httpx.Response(
            200,
            json={
                "message": {
                    "items": [
                        {"DOI": "10.1109/OTHER.2019.1234567", "title": ["Unrelated"]},
                        {
                            "DOI": "10.1109/CVPR.2018.8578097",
                            "title": ["Squeeze-and-Excitation Networks"],
                            "author": [{"given": "Jie", "family": "Hu"}],
                            "published": {"date-parts": [[2018, 6]]},
                        },
                    ]
                }
            },
        )

    adapter = CrossrefIeeeAdapter(CrossrefClient(transport=transport_for(handler)))

    record = await adapter.attempt("8578097", anonymous("crossref"))

    assert record.doi == "10.1109/CVPR.2018.8578097"
    assert record.title == "Squeeze-and-Excitation Networks"
    assert [author.full_name for author in record.authors] == ["Jie Hu"]


@pytest.mark.asyncio
async def test_openalex_ieee_skips_non_ieee_dois():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["filter"] == "doi:*8578097"
        return httpx.Response(
            200,
            json={
                "results": [
                    {"doi": "https://doi.org/10.5555/other.8578097", "title": "Other"},
                    {"doi": "https://doi.org/10.1109/CVPR.2018.8578097", "title": "Squeeze-and-Excitation Networks", "publication_year": 2018},
                ]
            },
        )

    adapter = OpenAlexIeeeAdapter(OpenAlexClient(transport=transport_for(handler)))

    record = await adapter.attempt("8578097", anonymous("openalex"))

    assert record.doi == "10.1109/CVPR.2018.8578097"
    assert record.year == "2018"


@pytest.mark.asyncio
async def test_openalex_ieee_without_match_is_empty():
    adapter = OpenAlexIeeeAdapter(OpenAlexClient(transport=transport_for(lambda request: httpx.Response(200, json={"results": []}))))

    outcome = await adapter.attempt("8578097", anonymous("openalex"))

    assert outcome.status == AttemptStatus.EMPTY


@pytest.mark.parametrize(
    "iso, expected",
    [("PT1H2M3S", "1:02:03"), ("PT2M3S", "2:03"), ("PT45S", "0:45"), ("P1D", "")],
)
def test_format_duration(iso, expected):
    assert format_duration(iso) == expected


@pytest.mark.asyncio
async def test_youtube_data_parses_snippet():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["part"] = request.url.params["part"]
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "snippet": {
                            "title": "Never Gonna Give You Up",
                            "channelTitle": "Rick Astley",
                            "channelId": "UCuAXFkgsw1L7xaCfnd5JJOw",
                            "publishedAt": "2009-10-25T06:57:33Z",
                            "description": "The official video",
                            "thumbnails": {"high": {"url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"}},
                        },
                        "contentDetails": {"duration": "PT3M33S"},
                    }
                ]
            },
        )

    adapter = YouTubeDataAdapter(YouTubeDataClient(transport=transport_for(handler)))
    credential = Credential(family="youtube", secret="AIza-key", source=CredentialSource.POOL)

    record = await adapter.attempt("dQw4w9WgXcQ", credential)

    assert isinstance(record, VideoRecord)
    assert (record.year, record.month, record.day) == ("2009", "10", "25")
    assert record.duration_formatted == "3:33"
    assert record.channel_url == "https://www.youtube.com/channel/UCuAXFkgsw1L7xaCfnd5JJOw"
    assert record.url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert seen == {"key": "AIza-key", "part": "snippet,contentDetails"}


@pytest.mark.asyncio
async def test_youtube_data_unknown_video_is_empty():
    adapter = YouTubeDataAdapter(YouTubeDataClient(transport=transport_for(lambda request: httpx.Response(200, json={"items": []}))))
    credential = Credential(family="youtube", secret="AIza-key", source=CredentialSource.POOL)

    outcome = await adapter.attempt("dQw4w9WgXcQ", credential)

    assert outcome.status == AttemptStatus.EMPTY


@pytest.mark.asyncio
async def test_youtube_oembed_has_no_publish_date():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/oembed"
        assert request.url.params["url"] == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        return httpx.Response(200, json={"title": "Never Gonna Give You Up", "author_name": "Rick Astley", "author_url": "https://www.youtube.com/@RickAstleyYT"})

    adapter = YouTubeOEmbedAdapter(YouTubeOEmbedClient(transport=transport_for(handler)))

    record = await adapter.attempt("dQw4w9WgXcQ", anonymous("youtube_oembed"))

    assert record.channel_title == "Rick Astley"
    assert record.year == UNKNOWN_YEAR
    assert record.video_id == "dQw4w9WgXcQ"
