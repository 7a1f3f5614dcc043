"""
Source Fetchers - e-TAR register, LAT bulletins, government resolutions

Downloads the raw documents the ingestion CLI feeds into the parsers:
- Labor Code / OSH law: consolidated edition DOCX from the e-TAR register
- LAT practice bulletins: PDF links listed on the court's review page
- Government resolutions (nutarimai): PDF linked from each act's e-TAR page

HTTP goes through one requests session with urllib3 retry backoff for 5xx
responses, plus page-level retries in fetch_page. A page that still fails
returns None and the caller skips that document.
"""

import re
import time
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin, urlparse

import fitz  # PyMuPDF
import requests
from bs4 import BeautifulSoup
from docx import Document
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .language_patterns import (
    BULLETIN_LINK_PATTERN,
    ETAR_EDITION_ID_PATTERN,
    ETAR_EFFECTIVE_DATE_PATTERN,
    ETAR_PDF_LINK_PATTERN,
)

logger = logging.getLogger(__name__)

ETAR_BASE_URL = "https://www.e-tar.lt"
LAT_BASE_URL = "https://www.lat.lt"
LAT_BULLETIN_INDEX_URL = (
    f"{LAT_BASE_URL}/teismu-praktika/lat-praktika/"
    "kasmenesines-lat-praktikos-apzvalgos-nuo-2015-m./61"
)

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/pdf,application/octet-stream,*/*",
    "Accept-Language": "lt-LT,lt;q=0.9,en;q=0.8",
}
RATE_LIMIT_SECONDS = 1.0
MIN_PDF_BYTES = 1000


@dataclass
class SourceDocument:
    """One fetched source unit: a statute edition, bulletin, resolution or FAQ page."""
    source_type: str  # statute | ruling | resolution | faq | web-page
    source_id: str
    raw_text: str
    title: str = ""
    url: Optional[str] = None
    fetched_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_empty(self) -> bool:
        return not self.raw_text.strip()


@dataclass
class EditionInfo:
    """The current consolidated edition of a statute in e-TAR."""
    legal_act_id: str
    edition_id: Optional[str]
    effective_date: str

    @property
    def docx_url(self) -> Optional[str]:
        if not self.edition_id:
            return None
        return (
            f"{ETAR_BASE_URL}/rs/actualedition/{self.legal_act_id}/"
            f"{self.edition_id}/format/MSO2010_DOCX/"
        )


@dataclass(frozen=True)
class ResolutionSource:
    """A government resolution (nutarimas) tracked in the index."""
    id: str
    title: str
    legal_act_id: str
    description: str = ""

    @property
    def page_url(self) -> str:
        return f"{ETAR_BASE_URL}/portal/lt/legalAct/{self.legal_act_id}/asr"


RESOLUTIONS = [
    ResolutionSource("nutarimas-496-2017", "Dėl Lietuvos Respublikos darbo kodekso įgyvendinimo",
                     "76731a705b4711e79198ffdb108a3753",
                     "DK įgyvendinimo nutarimas - specialios pertraukos, sezoninis darbas"),
    ResolutionSource("nutarimas-1341-2002", "Dėl valstybės valdomų įmonių vadovų darbo užmokesčio",
                     "TAR.AF454CDF6788", "Valstybės įmonių vadovų atlyginimai"),
    ResolutionSource("nutarimas-518-2017", "Dėl asmenų iki aštuoniolikos metų įdarbinimo",
                     "46a43c005cd411e79198ffdb108a3753", "Nepilnamečių įdarbinimas, vaikų darbas"),
    ResolutionSource("nutarimas-469-2017",
                     "Dėl nėščių, neseniai pagimdžiusių, krūtimi maitinančių darbuotojų darbo sąlygų",
                     "eb65c040574a11e7846ef01bfffb9b64", "Nėščiųjų darbo sąlygos, motinystės apsauga"),
    ResolutionSource("nutarimas-1118-2004", "Dėl Nelaimingų atsitikimų darbe tyrimo ir apskaitos nuostatų",
                     "TAR.AF1B122D7145", "Nelaimingi atsitikimai darbe, tyrimas, apskaita"),
    ResolutionSource("nutarimas-487-2004", "Dėl Profesinių ligų tyrimo ir apskaitos nuostatų",
                     "TAR.04551A50A76D", "Profesinės ligos, tyrimas, apskaita"),
    ResolutionSource("nutarimas-86-2001", "Dėl Ligos ir motinystės socialinio draudimo išmokų nuostatų",
                     "TAR.4707C1616570", "Ligos išmokos, motinystės išmokos, nedarbingumas"),
    ResolutionSource("nutarimas-1656-2004", "Dėl Nedarbo socialinio draudimo išmokų nuostatų",
                     "TAR.9A230138C75D", "Nedarbo išmokos, bedarbio pašalpa"),
    ResolutionSource("nutarimas-309-2004",
                     "Dėl Nelaimingų atsitikimų darbe ir profesinių ligų socialinio draudimo išmokų",
                     "TAR.818206FCA97A", "Draudimo išmokos dėl nelaimingų atsitikimų"),
    ResolutionSource("nutarimas-495-2017", "Dėl Garantinio fondo nuostatų",
                     "6d2008e05b4011e79198ffdb108a3753", "Garantinis fondas, bankrotas, darbuotojų reikalavimai"),
    ResolutionSource("nutarimas-576-2017", "Dėl Ilgalaikio darbo išmokų fondo nuostatų",
                     "8609c09067bf11e7827cd63159af616c", "Ilgalaikio darbo išmokos"),
    ResolutionSource("nutarimas-115-2003", "Dėl Darbo sutarties pavyzdinių formų",
                     "TAR.ACECA7410B1E", "Darbo sutarties forma, šablonas"),
    ResolutionSource("nutarimas-166-2004", "Dėl Darbo ginčų komisijos posėdžio protokolo formos",
                     "TAR.8C415293D6EE", "DGK protokolas, darbo ginčai"),
]


# =============================================================================
# HTTP
# =============================================================================

def make_session() -> requests.Session:
    """Create a session with browser headers and retry backoff."""
    s = requests.Session()
    s.headers.update(BROWSER_HEADERS)
    retries = Retry(total=3, backoff_factor=2, status_forcelist=[500, 502, 503, 504])
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


def fetch_page(url: str, session: requests.Session, retries: int = 3, delay: float = RATE_LIMIT_SECONDS) -> Optional[str]:
    """Fetch a page with retries and rate limiting."""
    for attempt in range(retries):
        try:
            time.sleep(delay)
            resp = session.get(url, timeout=30)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            resp.encoding = resp.encoding or resp.apparent_encoding or "utf-8"
            return resp.text
        except requests.RequestException as e:
            logger.warning(f"Attempt {attempt+1}/{retries} failed for {url}: {e}")
            if attempt < retries - 1:
                time.sleep(2 ** attempt)
    return None


def fetch_bytes(url: str, session: requests.Session, retries: int = 3, timeout: int = 60) -> Optional[bytes]:
    """Download a binary file; None when every attempt fails."""
    for attempt in range(retries):
        try:
            resp = session.get(url, timeout=timeout)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            return resp.content
        except requests.RequestException as e:
            logger.warning(f"Attempt {attempt+1}/{retries} failed for {url}: {e}")
            if attempt < retries - 1:
                time.sleep(2 ** attempt)
    return None


def download_file(url: str, output_dir: Path, session: requests.Session) -> Optional[Path]:
    """Download into output_dir, skipping files that already exist."""
    output_path = Path(output_dir) / bulletin_filename(url)
    if output_path.exists() and output_path.stat().st_size > 0:
        return output_path

    data = fetch_bytes(url, session)
    if not data:
        return None
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    return output_path


# =============================================================================
# Text Extraction
# =============================================================================

def docx_to_text(data: bytes) -> str:
    """Plain text of a DOCX; paragraphs separated by blank lines."""
    document = Document(BytesIO(data))
    paragraphs = [p.text for p in document.paragraphs if p.text and p.text.strip()]
    return "\n\n".join(paragraphs)


def pdf_to_text(source) -> str:
    """Plain text of a PDF given as bytes or a path; pages separated by blank lines."""
    if isinstance(source, (bytes, bytearray)):
        doc = fitz.open(stream=bytes(source), filetype="pdf")
    else:
        doc = fitz.open(str(source))
    with doc:
        return "\n\n".join(page.get_text() for page in doc)


def load_document_text(path: Path) -> str:
    """Text of a local .pdf, .docx or .txt file."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        return pdf_to_text(path)
    if suffix == ".docx":
        return docx_to_text(path.read_bytes())
    return path.read_text(encoding="utf-8")


def load_local_document(path: Path, source_type: str, title: str = "") -> SourceDocument:
    """Wrap a local file as a SourceDocument keyed by its filename."""
    path = Path(path)
    return SourceDocument(
        source_type=source_type,
        source_id=path.name,
        raw_text=load_document_text(path),
        title=title or path.stem,
    )


# =============================================================================
# e-TAR
# =============================================================================

def parse_edition_page(html: str, legal_act_id: str) -> EditionInfo:
    """Current edition ID and effective date from an act's register page."""
    edition = ETAR_EDITION_ID_PATTERN.search(html)
    effective = ETAR_EFFECTIVE_DATE_PATTERN.search(html)
    return EditionInfo(
        legal_act_id=legal_act_id,
        edition_id=edition.group(1) if edition else None,
        effective_date=effective.group(1) if effective else date.today().isoformat(),
    )


def discover_edition(legal_act_id: str, session: requests.Session) -> Optional[EditionInfo]:
    """Look up the current consolidated edition of an act; None when the page is unreachable."""
    url = f"{ETAR_BASE_URL}/portal/lt/legalAct/{legal_act_id}/asr"
    html = fetch_page(url, session)
    if html is None:
        logger.error(f"Could not load e-TAR page {url}")
        return None
    info = parse_edition_page(html, legal_act_id)
    logger.info(f"e-TAR {legal_act_id}: edition {info.edition_id}, effective {info.effective_date}")
    return info


def fetch_statute_document(info: EditionInfo, session: requests.Session, title: str = "") -> Optional[SourceDocument]:
    """Download the edition DOCX; None when the edition is unknown or the download fails."""
    if not info.docx_url:
        logger.error(f"No edition id for {info.legal_act_id}; cannot build DOCX URL")
        return None
    data = fetch_bytes(info.docx_url, session)
    if not data:
        return None
    return SourceDocument(
        source_type="statute",
        source_id=info.legal_act_id,
        raw_text=docx_to_text(data),
        title=title,
        url=info.docx_url,
    )


def find_resolution_pdf_url(html: str) -> Optional[str]:
    """Absolute URL of the PDF rendition linked from a register page."""
    match = ETAR_PDF_LINK_PATTERN.search(html)
    if not match:
        return None
    return urljoin(ETAR_BASE_URL, match.group(1).replace("&amp;", "&"))


def fetch_resolution_document(resolution: ResolutionSource, session: requests.Session) -> Optional[SourceDocument]:
    """A resolution's PDF as a SourceDocument, or None when any step fails."""
    html = fetch_page(resolution.page_url, session)
    if html is None:
        return None
    pdf_url = find_resolution_pdf_url(html)
    if pdf_url is None:
        logger.warning(f"No PDF link for {resolution.id}")
        return None
    data = fetch_bytes(pdf_url, session)
    if not data or len(data) < MIN_PDF_BYTES:
        logger.warning(f"PDF for {resolution.id} missing or too small")
        return None
    return SourceDocument(
        source_type="resolution",
        source_id=resolution.id,
        raw_text=pdf_to_text(data),
        title=resolution.title,
        url=pdf_url,
    )


# =============================================================================
# LAT Bulletins
# =============================================================================

def extract_bulletin_links(html: str, base_url: str = LAT_BASE_URL) -> list[str]:
    """PDF links of monthly bulletins, in page order, without duplicates."""
    soup = BeautifulSoup(html, "html.parser")
    links = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if BULLETIN_LINK_PATTERN.search(href):
            url = urljoin(base_url, href)
            if url not in links:
                links.append(url)
    return links


def discover_bulletins(session: requests.Session, index_url: str = LAT_BULLETIN_INDEX_URL) -> list[str]:
    html = fetch_page(index_url, session)
    if html is None:
        logger.error("Failed to fetch LAT bulletin index")
        return []
    links = extract_bulletin_links(html)
    logger.info(f"Found {len(links)} bulletin PDFs")
    return links


def bulletin_filename(url: str) -> str:
    return re.sub(r"[?#].*$", "", urlparse(url).path.split("/")[-1])
