"""
Lithuanian Pattern Definitions for the Labor-Law RAG

All regex patterns, prompt templates, and context labels used by the parsers,
the ingestion pipeline and the retriever. Modules import from here instead of
defining patterns inline, so each heuristic can be tuned in one place.
"""

import re

# Uppercase Lithuanian letters, used in heading and title patterns
LT_UPPER = "A-ZĄČĘĖĮŠŲŪŽ"

# =============================================================================
# Structural Markers (statute hierarchy)
# =============================================================================

# Ordinal words as they appear in part (feminine) and section (masculine) headings
ORDINAL_MAP = {
    "PIRMOJI": 1, "PIRMASIS": 1, "PIRMAS": 1,
    "ANTROJI": 2, "ANTRASIS": 2, "ANTRAS": 2,
    "TREČIOJI": 3, "TREČIASIS": 3, "TREČIAS": 3,
    "KETVIRTOJI": 4, "KETVIRTASIS": 4, "KETVIRTAS": 4,
    "PENKTOJI": 5, "PENKTASIS": 5, "PENKTAS": 5,
    "ŠEŠTOJI": 6, "ŠEŠTASIS": 6, "ŠEŠTAS": 6,
    "SEPTINTOJI": 7, "SEPTINTASIS": 7, "SEPTINTAS": 7,
    "AŠTUNTOJI": 8, "AŠTUNTASIS": 8, "AŠTUNTAS": 8,
    "DEVINTOJI": 9, "DEVINTASIS": 9, "DEVINTAS": 9,
    "DEŠIMTOJI": 10, "DEŠIMTASIS": 10, "DEŠIMTAS": 10,
}

ROMAN_MAP = {
    "I": 1, "II": 2, "III": 3, "IV": 4, "V": 5,
    "VI": 6, "VII": 7, "VIII": 8, "IX": 9, "X": 10,
    "XI": 11, "XII": 12, "XIII": 13, "XIV": 14, "XV": 15,
}

# Group 1 is the number word, group 2 the heading title on the next line
STRUCTURE_PATTERNS = {
    "dalis": re.compile(rf"([{LT_UPPER}]+)\s+DALIS\s*\n\s*([^\n]+)"),
    "skyrius": re.compile(r"([IVX]+)\s+SKYRIUS\s*\n\s*([^\n]+)"),
    "skirsnis": re.compile(rf"([{LT_UPPER}]+)\s+SKIRSNIS\s*\n\s*([^\n]+)"),
}

# Which lookup resolves the number word of each marker kind
STRUCTURE_NUMBERING = {
    "dalis": ORDINAL_MAP,
    "skyrius": ROMAN_MAP,
    "skirsnis": ORDINAL_MAP,
}

# =============================================================================
# Article Markers
# =============================================================================

ARTICLE_START_PATTERN = re.compile(
    rf"(?:^|\n)\s*(\d+)\s*straipsnis\.?\s+([{LT_UPPER}][^\n]*)"
)

# Titles starting with these characters are parser noise ("5 straipsnis) ...")
ARTICLE_TITLE_NOISE = re.compile(r"^[)\].,;:]")

LABOR_CODE_BODY_ANCHOR = re.compile(r"DARBO\s+KODEKSAS\s*\n")

# =============================================================================
# Amendment History Noise (e-TAR consolidated editions)
# =============================================================================

_TAR_REFERENCE = r"Nr\.\s*,\s*\n[\d-]+,\s*\npaskelbta TAR [\d-]+, i\. k\. [\d-]+\s*"

AMENDMENT_NOISE_PATTERNS = [
    re.compile(r"Straipsnio (?:dalies |punkto )?pakeitimai:\s*\n" + _TAR_REFERENCE),
    re.compile(r"Straipsnio dalies numeracijos pakeitimas:\s*\n" + _TAR_REFERENCE),
    re.compile(r"Papildyta straipsnio dalimi:\s*\n" + _TAR_REFERENCE),
    re.compile(r"Pakeistas straipsnio pavadinimas:\s*\n" + _TAR_REFERENCE),
    re.compile(r"Neteko galios nuo [\d-]+:\s*\n" + _TAR_REFERENCE),
    # Catch-all for any remaining TAR references
    re.compile(_TAR_REFERENCE),
]

# Headings of the next structural unit that leak into the end of an article
TRAILING_HEADING_PATTERNS = [
    re.compile(rf"\n[{LT_UPPER}]+\s+(?:SKIRSNIS|SKYRIUS|DALIS)\s*\n[{LT_UPPER}\s]+$"),
    re.compile(rf"\n[IVX]+\s+SKYRIUS\s*\n[{LT_UPPER}\s]+$"),
]

# =============================================================================
# Cross-Reference Patterns
# =============================================================================

# "57 straipsnio", "126 straipsnis", "str. 52"
REFERENCE_PATTERNS = [
    re.compile(r"(\d+)\s*straipsni[oįųs]", re.IGNORECASE),
    re.compile(r"str\.\s*(\d+)", re.IGNORECASE),
]

# Article mentions in user questions: "56 straipsnis", "DK 56", "str. 56"
QUERY_ARTICLE_PATTERNS = [
    re.compile(r"(\d{2,3})\s*straipsn", re.IGNORECASE),
    re.compile(r"DK\s*(\d+)", re.IGNORECASE),
    re.compile(r"str\.\s*(\d+)", re.IGNORECASE),
]

# =============================================================================
# Court Practice Bulletins (LAT)
# =============================================================================

# Subsection heading on its own line
SUBSECTION_HEADING_TEMPLATE = r"\n\s*({label})\s*\n"

LABOR_LAW_SUBSECTION = r"Darbo\s+teis[ėe]"

# A table-of-contents entry is followed by leader dots or a bare page number
TOC_FOLLOWER_PATTERNS = [
    re.compile(r"^[\s.]+\d+"),
    re.compile(r"^\.{3,}"),
    re.compile(r"^\d{1,4}\s*(?:\n|$)"),
]

# ...or sits right after the previous entry's leader dots and page number
TOC_PRECEDER_PATTERN = re.compile(r"\.{10,}\s*\d*\s*$")

SIBLING_TOPIC_NAMES = [
    "Prievolių", "Daiktinė", "Sutarčių", "Šeimos", "Paveldėjimo",
    "Civilinio proceso", "Nemokumo", "Intelektinės", "Draudimo",
    "Konkurencijos", "Bendrovių", "Bankroto", "Mokesčių", "Sandoriai",
    "Atstovavimas",
]

SUBSECTION_LABELS = [
    "Viešieji pirkimai", "Viešųjų pirkimų", "Procesinė teisė",
    "Proceso teisė", "Įmonių teisė",
]

NEXT_SECTION_PATTERN = re.compile(
    r"\n\s*(?:" + "|".join(SIBLING_TOPIC_NAMES) + r")\s+teis[ėe]\s*\n"
    r"|\n\s*(?:" + "|".join(SUBSECTION_LABELS) + r")\s*\n",
    re.IGNORECASE,
)

LEADER_DOTS_PATTERN = re.compile(r"\.{5,}")
PAGE_NUMBER_LINE_PATTERN = re.compile(r"\n\s*\d{1,3}\s*\n")

# Each case in a bulletin starts with a "Dėl ..." title line
CASE_SPLIT_PATTERN = re.compile(r"\n(?=Dėl\s+)", re.IGNORECASE)
CASE_TITLE_PATTERN = re.compile(r"^(Dėl\s+[^\n]+)", re.IGNORECASE)

# Docket numbers: "Nr. e3K-3-176-684/2024", "3K-3-45/2020"
CASE_NUMBER_PATTERN = re.compile(r"(?:Nr\.\s*)?(e?\d*K-[\d-]+/\d{4})")

BULLETIN_FILENAME_PATTERNS = [
    # LAT_2024_Spalio.pdf
    (re.compile(r"LAT_(\d{4})_([^.]+)\.pdf", re.IGNORECASE), "year_first"),
    # lat_aktuali_praktika_birzelis_2025.pdf
    (re.compile(r"lat_aktua?l?i_praktika_([^_]+)_(\d{4})\.pdf", re.IGNORECASE), "month_first"),
]

BULLETIN_LINK_PATTERN = re.compile(r"/data/public/uploads/[^\"]+\.pdf$")

# =============================================================================
# e-TAR Register Pages
# =============================================================================

ETAR_EDITION_ID_PATTERN = re.compile(r"actualEditionId=([^\"&]+)")
ETAR_EFFECTIVE_DATE_PATTERN = re.compile(
    r"Galiojanti suvestinė redakcija[^\[]*\[(\d{4}-\d{2}-\d{2})"
)
ETAR_PDF_LINK_PATTERN = re.compile(r"href=\"([^\"]*ISO_PDF[^\"]*)\"")

# =============================================================================
# Context Labels (retrieval output for the answer generator)
# =============================================================================

LABELS = {
    "legislation": "[DARBO KODEKSAS, {number} straipsnis{title}]",
    "osh_legislation": "[DSS ĮSTATYMAS, {number} straipsnis{title}]",
    "ruling": "[LAT NUTARTIS{reference}]",
    "nutarimas": "[VYRIAUSYBĖS NUTARIMAS: {title}]",
    "vdi_faq": "[VDI DUK: {question}]",
    "vdi_doc": "[VDI DOKUMENTAS: {title}]",
    "ruling_topic": "Tema: {title}",
    "ruling_summary": "Santrauka: {summary}",
    "no_sources": "Šaltinių nerasta.",
}

# =============================================================================
# LLM Prompts
# =============================================================================

LABOR_CODE_CATALOGUE = """I. BENDROSIOS NUOSTATOS (1-20): paskirtis, reglamentavimas, šaltiniai, principai, šalys, darbdavio ir darbuotojo teisės bei pareigos, senatis darbo ginčuose (20)
II. DARBO SUTARTIS (21-40): samprata, būtinosios ir papildomos sąlygos, nekonkuravimas (25), sudarymas ir forma, sąlygų keitimas (33), perkėlimas (34), nušalinimas (35), išbandymas (36), darbo funkcijos (37)
III. DARBO SUTARTIES PASIBAIGIMAS (41-60): pagrindai, šalių susitarimas (54), darbuotojo iniciatyva (55, 56), darbdavio iniciatyva be kaltės (57) ir dėl kaltės (58), darbdavio valia (59), neteisėtas atleidimas (218)
IV. APRIBOJIMAI IR GARANTIJOS (61-65): nutraukimo apribojimai, įspėjimo terminai, išeitinė išmoka, grupės atleidimas (63)
V. SPECIALIOS DARBO SUTARTYS (66-100): terminuota (67-69), laikinojo darbo (70-72), pameistrystės, projektinio darbo, darbo vietos dalijimosi, sezoninio darbo, nuotolinis darbas (52)
VI. DARBO LAIKAS (101-120): darbo laiko norma, režimai, suminė apskaita, budėjimas, maksimalus darbo laikas, nakties darbas, viršvalandžiai (119)
VII. POILSIO LAIKAS (121-125): pertraukos, paros ir savaitės poilsis
VIII. ATOSTOGOS (126-140): kasmetinės (126), pailgintos, papildomos, tikslinės, nėštumo ir gimdymo, tėvystės, vaiko priežiūros, nemokamos atostogos
IX. DARBO UŽMOKESTIS (141-150): MMA, apmokėjimo sistema, mokėjimas, vidutinis darbo užmokestis, išskaitos
X. MATERIALINĖ ATSAKOMYBĖ (151-160): darbuotojo ir darbdavio atsakomybė, žalos atlyginimas
XI. DARBUOTOJŲ ATSTOVAVIMAS (161-180): profesinės sąjungos, darbo taryba, darbuotojų patikėtinis
XII. KOLEKTYVINIAI DARBO SANTYKIAI (181-202): kolektyvinės sutartys ir derybos
XIII. INFORMAVIMAS IR KONSULTAVIMAS (203-211)
XIV. DARBO GINČAI (212-240): darbo ginčų komisija, ginčai teisme, streikai
XV. DARBUOTOJŲ SAUGA IR SVEIKATA (241-264)"""

LLM_PROMPTS = {
    "article_extraction": """Tu esi Lietuvos darbo teisės ekspertas. Vartotojas užduoda klausimą apie darbo teisę.
Nustatyk, kurie Darbo kodekso straipsniai gali būti aktualūs šiam klausimui.

DARBO KODEKSO STRUKTŪRA:
{catalogue}

Klausimas: {query}

Grąžink TIK skaičių sąrašą (be teksto), pvz.: 62, 63, 61
Pasirink 3-5 aktualiausius straipsnius.""",

    "case_summary": """Esi Lietuvos darbo teisės ekspertas. Pateikta LAT (Lietuvos Aukščiausiojo Teismo) bylos santrauka darbo teisės srityje.

Sugeneruok trumpą (1-2 sakiniai, max 150 žodžių) bylos santrauką lietuvių kalba, kuri apimtų:
1. Pagrindinį teisinį klausimą/ginčą
2. Svarbius DK (Darbo kodekso) straipsnius, jei minimi
3. Teismo sprendimo esmę

Formatas: rašyk glaustai, be įžangos, tik esminę informaciją.

Bylos pavadinimas: {title}

Bylos turinys:
{content}

Santrauka:""",
}

# Reply parsing for the article extraction prompt
LLM_NUMBER_SPLIT = re.compile(r"[,\s]+")
