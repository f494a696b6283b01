"""Prompt construction for study material, quizzes, stories and evaluations."""

import re
from typing import Literal

from taltrekkers.config import load_subject_instructions
from taltrekkers.models.study import FrayerModel

Part = Literal["definitions", "story", "questions"]

CENSOR_MASK = "_______"

EVALUATION_SYSTEM_PROMPT = (
    "Je bent een behulpzame leraar. Begin positief. "
    "Gebruik headers: ### Oordeel, ### Analyse, ### Concrete tips."
)

ERROR_FEEDBACK_FALLBACK = "Het antwoord was helaas niet correct. Kijk goed naar de definitie!"


def context_instruction(context: str | None, part: Part = "definitions") -> str:
    """Domain phrasing for a subject or course.

    Known subjects come from the subjects table; free-text contexts that are not one of
    the general levels get a generic school-subject sentence; levels get nothing.
    """
    if not context:
        return ""
    relation = (
        "gerelateerd zijn aan"
        if part == "definitions"
        else "zich afspelen in een context die relevant is voor"
    )
    table = load_subject_instructions()
    subjects = table.get("subjects", {})
    if context in subjects:
        return f"De voorbeelden en {part} moeten {relation} {subjects[context]}."
    if context not in table.get("levels", []):
        return f'De voorbeelden en {part} moeten {relation} het schoolvak of de studierichting "{context}".'
    return ""


def difficulty_instruction(difficulty: str | None) -> str:
    table = load_subject_instructions().get("difficulty", {})
    if difficulty and difficulty in table:
        return table[difficulty]
    return table.get("default", "Gebruik duidelijke en correcte taal (CEFR B1-niveau).")


def censor_target_word(text: str, target_word: str) -> str:
    """Mask the word and any suffixed forms (plurals, conjugations) in ``text``."""
    if not text or not target_word:
        return text
    pattern = re.compile(rf"\b{re.escape(target_word)}\w*", re.IGNORECASE)
    return pattern.sub(CENSOR_MASK, text)


def frayer_prompt(word: str, context: str | None, difficulty: str | None) -> str:
    return (
        f'Genereer een Frayer Model voor het Nederlandse woord "{word}". '
        f"De doelgroep zijn NT2-leerders. {difficulty_instruction(difficulty)} "
        f"{context_instruction(context)} "
        "Geef de definitie, 3 synoniemen, 3 antoniemen, en 3 voorbeeldobjecten. "
        "Elk voorbeeldobject moet een 'sentence' bevatten (een complete, informatieve zin "
        "waarin het woord wordt gebruikt) en een 'usedWord' (de exacte, vervoegde of "
        f'verbogen vorm van "{word}" die in die zin voorkomt). BELANGRIJKE REGEL: Als '
        f'"{word}" een scheidbaar werkwoord is (bv. \'opbellen\') en het in de zin gesplitst '
        "wordt gebruikt (bv. 'ik bel mijn oma op'), moet 'usedWord' BEIDE delen bevatten, "
        "gescheiden door een spatie (bv. 'bel op')."
    )


def translate_prompt(model: FrayerModel, language: str) -> str:
    return (
        f'Vertaal de waarden van dit JSON-object naar de taal "{language}". '
        "Behoud de JSON-structuur en de sleutelnamen. Vertaal 'definition', 'synonyms' "
        "en 'antonyms'. Vertaal voor elk object in 'examples' alleen 'sentence'; "
        f"vertaal 'usedWord' NIET. JSON: {model.model_dump_json(by_alias=True)}"
    )


def quiz_prompt(models: list[FrayerModel], words: list[str]) -> str:
    context = "\n".join(
        f"- {word}: {model.definition}\n"
        f"Voorbeeldzinnen: {'; '.join(ex.sentence for ex in model.examples)}"
        for word, model in zip(words, models)
    )
    return f"""\
Genereer een quiz met multiple-choice vragen in het Nederlands voor leerlingen in het \
secundair onderwijs (2e/3e graad). Je krijgt een lijst van woorden en hun Frayer Model \
data. Maak voor **elk woord** in de lijst precies één unieke en uitdagende vraag.

**Context:**
{context}

**Instructies voor de vragen:**
1.  **Variatie:** Creëer verschillende soorten vragen (definitie, synoniem, gatentekst, context).
2.  **Afleiders:** De foute antwoorden moeten plausibel zijn.
3.  **Opties:** Elke vraag heeft exact 4 opties en één correcte index (0-gebaseerd).
4.  **Scheidbare werkwoorden:** Gebruik geen gatentekst met de infinitief als antwoord; \
kies dan een definitie- of synoniemvraag.

Genereer een vraag voor elk van de volgende woorden: {', '.join(words)}."""


def writing_question(word: str, definition: str) -> str:
    return f'Typ het woord dat past bij deze definitie: "{censor_target_word(definition, word)}"'


def error_feedback_prompt(question: str, user_answer: str, correct_answer: str) -> str:
    return (
        "Een leerling gaf het foute antwoord op een quizvraag. Geef kort (max 2 zinnen) en "
        "bemoedigend feedback waarom het fout is en wat het verschil is met het juiste "
        f"antwoord.\n\nVraag: {question}\nFout antwoord van leerling: {user_answer}\n"
        f"Juist antwoord: {correct_answer}\n\nRicht je tot de leerling."
    )


def simplify_prompt(question: str) -> str:
    return (
        "Herschrijf deze quizvraag in eenvoudigere woorden voor een NT2-leerling, zonder "
        f"het antwoord te verklappen. Geef alleen de nieuwe vraag terug.\n\nVRAAG: {question}"
    )


def story_prompt(words: list[str], theme: str, context: str | None, difficulty: str | None) -> str:
    return f"""\
Je bent een AI-assistent voor een leraar Nederlands, gespecialiseerd in NT2-leerlingen \
(14-15 jaar). Schrijf een verhaal over "{theme}".
- **Woorden:** {', '.join(words)}
- **Niveau:** {difficulty_instruction(difficulty)}
- **Context:** {context_instruction(context, 'story')}

**Regels:**
1. Plot moet logisch zijn.
2. Integreer alle woorden natuurlijk en grammaticaal correct (juiste vervoeging!).
3. Markeer de woorden met **dubbele asterisken** (bv. **woord**).
4. Gebruik alinea labels (Alinea 1:, etc.).

Geef antwoord als JSON met "title" en "story"."""


def theme_prompt(words: list[str], context: str | None) -> str:
    prompt = (
        "Bedenk een humoristisch en herkenbaar thema voor een kort verhaal voor jongeren "
        f"van 14-15 jaar. Het verhaal zal de woorden '{', '.join(words)}' bevatten. "
        "Geef alleen het thema terug als een korte zin."
    )
    if context:
        prompt += f" Context: {context}."
    return prompt


def didactic_analysis_prompt(student_name: str, quiz_results_json: str, timing_json: str) -> str:
    return (
        f"Analyseer de resultaten van leerling {student_name}. Gebruik headers: "
        "### Samenvatting, ### Analyse van leertempo en tijd, ### Inzichten in leergedrag, "
        f"### Concrete tips voor de leerkracht.\nData: {quiz_results_json}\n"
        f"Timing: {timing_json}"
    )


def key_terms_prompt(text: str) -> str:
    return (
        "Analyseer de volgende tekst en extraheer de belangrijkste schooltaalwoorden of "
        "vakspecifieke termen (maximaal 100). Vermijd alledaagse woorden. Geef alleen de "
        f"lijst terug onder de sleutel 'terms'.\n\nTEKST:\n{text}"
    )
