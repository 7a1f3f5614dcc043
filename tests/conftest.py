"""
Shared fixtures and test utilities for Labor-Law RAG tests.

Provides mock services, sample Lithuanian texts, and reusable fixtures so that
all tests can run without API keys, a Pinecone index, or external network access.
"""

import sys
import hashlib
from pathlib import Path

import pytest
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup - ensure the execution package is importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

# ---------------------------------------------------------------------------
# Sample consolidated Labor Code edition (abridged)
# ---------------------------------------------------------------------------
SAMPLE_LABOR_CODE = """LIETUVOS RESPUBLIKOS
DARBO KODEKSO PATVIRTINIMO, ĮSIGALIOJIMO IR ĮGYVENDINIMO
ĮSTATYMAS

1 straipsnis. Lietuvos Respublikos darbo kodekso patvirtinimas
Patvirtinti Lietuvos Respublikos darbo kodeksą, kuris įsigalioja kartu su šiuo įstatymu.

LIETUVOS RESPUBLIKOS
DARBO KODEKSAS

PIRMOJI DALIS
BENDROSIOS NUOSTATOS

I SKYRIUS
DARBO KODEKSO PASKIRTIS

1 straipsnis. Darbo kodekso paskirtis
1. Šis kodeksas reglamentuoja darbo santykius, susijusius su darbo santykiais santykius ir jų teisinį reguliavimą.
2. Kodekso nuostatos taikomos darbdaviams ir darbuotojams Lietuvos Respublikoje.

2 straipsnis. Darbo santykių teisinio reglamentavimo principai
1. Darbo santykių teisinis reglamentavimas grindžiamas teisinio apibrėžtumo ir darbo santykių stabilumo principais.
2. Darbdavys privalo laikytis 36 straipsnio nuostatų dėl išbandymo.

ANTROJI DALIS
INDIVIDUALIEJI DARBO SANTYKIAI

II SKYRIUS
DARBO SUTARTIS

PIRMASIS SKIRSNIS
DARBO SUTARTIES SAMPRATA

36 straipsnis. Išbandymas
1. Išbandymo sąlyga gali būti nustatyta darbo sutarties šalių susitarimu, išskyrus 33 straipsnio 2 dalyje nurodytus atvejus.
2. Išbandymo terminas negali būti ilgesnis kaip trys mėnesiai.
Straipsnio dalies pakeitimai:
Nr. ,
2018-06-28,
paskelbta TAR 2018-07-10, i. k. 2018-11600
37 straipsnis. Kita nuostata
1. Darbuotojas privalo atlikti darbo funkcijas, nustatytas darbo sutartyje ir darbovietės taisyklėse.
"""

# ---------------------------------------------------------------------------
# Sample LAT practice bulletin text (abridged)
# ---------------------------------------------------------------------------
_CASE_ONE = (
    "Dėl darbuotojo atleidimo iš darbo darbdavio iniciatyva be darbuotojo kaltės\n"
    "Kasacinis teismas, nagrinėdamas bylą, pažymėjo, kad darbdavys, nutraukdamas darbo sutartį "
    "pagal DK 57 straipsnį, turi įrodyti, jog darbo funkcija tapo perteklinė. Teismas rėmėsi "
    "ankstesne praktika, suformuota civilinėje byloje Nr. 3K-3-45/2020, ir nurodė, kad "
    "darbuotojui turi būti pasiūlytas kitas darbas. Kasacinio teismo nutartis civilinėje "
    "byloje e3K-3-99/2021\n"
)
_CASE_TWO = (
    "Dėl kasmetinių atostogų kompensacijos apskaičiavimo\n"
    "Teisėjų kolegija konstatavo, kad nepanaudotų kasmetinių atostogų kompensacija "
    "apskaičiuojama pagal vidutinį darbo užmokestį, o darbdavys negali vienašališkai "
    "mažinti kompensacijos dydžio.\n14\nKolegija taip pat nurodė, kad reikalavimams dėl "
    "kompensacijos taikoma DK 27 straipsnyje nustatyta senatis. Kasacinio teismo nutartis "
    "civilinėje byloje Nr. e3K-3-176-684/2024\n"
)

SAMPLE_BULLETIN = (
    "LIETUVOS AUKŠČIAUSIOJO TEISMO PRAKTIKOS APŽVALGA\n"
    "TURINYS\n"
    "Darbo teisė\n"
    "........................ 5\n"
    "Civilinio proceso teisė\n"
    "........................ 12\n"
    "\n"
    "Prievolių teisė\n"
    "Dėl sutartinių prievolių vykdymo ir netesybų mažinimo, kai skolininkas vėluoja.\n"
    "Darbo teisė\n"
    + _CASE_ONE
    + _CASE_TWO
    + "Civilinio proceso teisė\n"
    "Dėl bylinėjimosi išlaidų paskirstymo, kai ieškinys patenkintas iš dalies.\n"
)


@pytest.fixture
def sample_labor_code_text():
    """Return an abridged consolidated Labor Code edition."""
    return SAMPLE_LABOR_CODE


@pytest.fixture
def sample_bulletin_text():
    """Return an abridged LAT bulletin with a labor-law subsection of two cases."""
    return SAMPLE_BULLETIN


# ---------------------------------------------------------------------------
# Mock embedding service
# ---------------------------------------------------------------------------

class MockEmbeddingService:
    """Deterministic mock embedding service -- never calls external APIs."""

    def __init__(self, dimensions=1024, fail_on=()):
        self._dimensions = dimensions
        self._fail_on = tuple(fail_on)
        self._call_count = 0
        self.documents = []

    def embed_document(self, text):
        self._call_count += 1
        if any(marker in text for marker in self._fail_on):
            raise RuntimeError("embedding provider timeout")
        self.documents.append(text)
        return self._deterministic_embedding(text)

    def embed_documents(self, texts):
        return [self.embed_document(t) for t in texts]

    def embed_query(self, query):
        self._call_count += 1
        return self._deterministic_embedding(query)

    def _deterministic_embedding(self, text):
        h = hashlib.sha256(text.encode()).hexdigest()
        seed = int(h[:8], 16)
        return [((seed + i) % 1000) / 1000.0 for i in range(self._dimensions)]

    @property
    def dimensions(self):
        return self._dimensions


@pytest.fixture
def mock_embedding_service():
    return MockEmbeddingService(dimensions=8)


# ---------------------------------------------------------------------------
# Mock vector store (no Pinecone needed)
# ---------------------------------------------------------------------------

class MockVectorStore:
    """In-memory mock of VectorStore for testing without an index."""

    def __init__(self, fail_upserts=0):
        self._records = {}
        self._fail_upserts = fail_upserts
        self.upsert_calls = 0
        self.deleted_ids = []
        self.queries = []
        self.query_results = None
        self.fail_listing = False

    def connect(self):
        pass

    def upsert(self, vectors):
        self.upsert_calls += 1
        if self._fail_upserts > 0:
            self._fail_upserts -= 1
            raise ConnectionError("index unavailable")
        for v in vectors:
            self._records[v.id] = {"values": v.values, "metadata": dict(v.metadata)}
        return len(vectors)

    def delete_many(self, ids):
        self.deleted_ids.extend(ids)
        for vector_id in ids:
            self._records.pop(vector_id, None)
        return len(ids)

    def query(self, vector, top_k=10, filter=None):
        from execution.labor_rag.vector_store import SearchResult
        self.queries.append({"top_k": top_k, "filter": filter})
        if self.query_results is not None:
            results = self.query_results
            if filter:
                wanted = filter["docType"]["$eq"]
                results = [r for r in results if r.doc_type == wanted]
            return results[:top_k]

        results = []
        for i, (vector_id, record) in enumerate(self._records.items()):
            results.append(SearchResult(
                id=vector_id,
                score=round(0.9 - i * 0.01, 4),
                metadata=dict(record["metadata"]),
            ))
        return results[:top_k]

    def list_ids(self, prefix):
        if self.fail_listing:
            raise ConnectionError("list unavailable")
        return sorted(i for i in self._records if i.startswith(prefix))

    def fetch(self, ids):
        return {
            vector_id: dict(self._records[vector_id]["metadata"])
            for vector_id in ids
            if vector_id in self._records
        }

    def describe_stats(self):
        return {"total_vectors": len(self._records), "dimension": 8}

    def ids(self):
        return set(self._records)

    def snapshot(self):
        return {k: (tuple(v["values"]), tuple(sorted(v["metadata"].items()))) for k, v in self._records.items()}


@pytest.fixture
def mock_vector_store():
    return MockVectorStore()


# ---------------------------------------------------------------------------
# Mock completion service (NIM)
# ---------------------------------------------------------------------------

class MockCompletionService:
    """Async stand-in for CompletionService with a fixed reply or error."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def complete(self, prompt, max_tokens=100, temperature=0.1):
        self.prompts.append({"prompt": prompt, "max_tokens": max_tokens, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def mock_completion_service():
    return MockCompletionService(reply="57, 58")


# ---------------------------------------------------------------------------
# Search results for retriever / API tests
# ---------------------------------------------------------------------------

def make_result(vector_id, score, doc_type="ruling", source="semantic", **metadata):
    """Build a SearchResult with minimal metadata."""
    from execution.labor_rag.vector_store import SearchResult
    meta = {"docType": doc_type, "text": f"Tekstas {vector_id}", **metadata}
    return SearchResult(id=vector_id, score=score, metadata=meta, source=source)


@pytest.fixture
def sample_search_results():
    """Return semantic results of every document type."""
    return [
        make_result("darbo-kodeksas-str-57", 0.91, "legislation",
                    docId="darbo-kodeksas", articleNumber=57,
                    articleTitle="Darbo sutarties nutraukimas darbdavio iniciatyva be darbuotojo kaltės"),
        make_result("LAT_2024_Spalio-case-0", 0.84, "ruling",
                    caseNumber="e3K-3-99/2021", caseTitle="Dėl darbuotojo atleidimo",
                    caseSummary="Atleidimas dėl perteklinės funkcijos.", year="2024"),
        make_result("vdi-faq-3", 0.78, "vdi_faq", question="Kada mokama išeitinė išmoka?"),
        make_result("nutarimas-496-2017-chunk-1", 0.70, "nutarimas",
                    title="Dėl Lietuvos Respublikos darbo kodekso įgyvendinimo"),
    ]
