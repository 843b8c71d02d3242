from unicodedata import combining, normalize

from core.models import Book, Testament, VoiceProfile

_OLD = [
    ("Gênesis", 50, "Gn"),
    ("Êxodo", 40, "Êx"),
    ("Levítico", 27, "Lv"),
    ("Números", 36, "Nm"),
    ("Deuteronômio", 34, "Dt"),
    ("Josué", 24, "Js"),
    ("Juízes", 21, "Jz"),
    ("Rute", 4, "Rt"),
    ("1 Samuel", 31, "1Sm"),
    ("2 Samuel", 24, "2Sm"),
    ("1 Reis", 22, "1Rs"),
    ("2 Reis", 25, "2Rs"),
    ("1 Crônicas", 29, "1Cr"),
    ("2 Crônicas", 36, "2Cr"),
    ("Esdras", 10, "Ed"),
    ("Neemias", 13, "Ne"),
    ("Ester", 10, "Et"),
    ("Jó", 42, "Jó"),
    ("Salmos", 150, "Sl"),
    ("Provérbios", 31, "Pv"),
    ("Eclesiastes", 12, "Ec"),
    ("Cânticos", 8, "Ct"),
    ("Isaías", 66, "Is"),
    ("Jeremias", 52, "Jr"),
    ("Lamentações", 5, "Lm"),
    ("Ezequiel", 48, "Ez"),
    ("Daniel", 12, "Dn"),
    ("Oséias", 14, "Os"),
    ("Joel", 3, "Jl"),
    ("Amós", 9, "Am"),
    ("Obadias", 1, "Ob"),
    ("Jonas", 4, "Jn"),
    ("Miquéias", 7, "Mq"),
    ("Naum", 3, "Na"),
    ("Habacuque", 3, "Hc"),
    ("Sofonias", 3, "Sf"),
    ("Ageu", 2, "Ag"),
    ("Zacarias", 14, "Zc"),
    ("Malaquias", 4, "Ml"),
]

_NEW = [
    ("Mateus", 28, "Mt"),
    ("Marcos", 16, "Mc"),
    ("Lucas", 24, "Lc"),
    ("João", 21, "Jo"),
    ("Atos", 28, "At"),
    ("Romanos", 16, "Rm"),
    ("1 Coríntios", 16, "1Co"),
    ("2 Coríntios", 13, "2Co"),
    ("Gálatas", 6, "Gl"),
    ("Efésios", 6, "Ef"),
    ("Filipenses", 4, "Fp"),
    ("Colossenses", 4, "Cl"),
    ("1 Tessalonicenses", 5, "1Ts"),
    ("2 Tessalonicenses", 3, "2Ts"),
    ("1 Timóteo", 6, "1Tm"),
    ("2 Timóteo", 4, "2Tm"),
    ("Tito", 3, "Tt"),
    ("Filemom", 1, "Fm"),
    ("Hebreus", 13, "Hb"),
    ("Tiago", 5, "Tg"),
    ("1 Pedro", 5, "1Pe"),
    ("2 Pedro", 3, "2Pe"),
    ("1 João", 5, "1Jo"),
    ("2 João", 1, "2Jo"),
    ("3 João", 1, "3Jo"),
    ("Judas", 1, "Jd"),
    ("Apocalipse", 22, "Ap"),
]

BIBLE_BOOKS = [Book(name, chapters, Testament.OLD, abbr) for name, chapters, abbr in _OLD] + [
    Book(name, chapters, Testament.NEW, abbr) for name, chapters, abbr in _NEW
]

AVAILABLE_VOICES = [
    VoiceProfile(id="Puck", name="Puck", gender="Masculino", style="Animado"),
    VoiceProfile(id="Charon", name="Charon", gender="Masculino", style="Informativo"),
    VoiceProfile(id="Kore", name="Kore", gender="Feminino", style="Firme"),
    VoiceProfile(id="Fenrir", name="Fenrir", gender="Masculino", style="Entusiasmado"),
    VoiceProfile(id="Aoede", name="Aoede", gender="Feminino", style="Leve"),
    VoiceProfile(id="Zephyr", name="Zephyr", gender="Feminino", style="Brilhante"),
]


def _fold(text):
    decomposed = normalize("NFKD", text.strip().lower())
    return "".join(ch for ch in decomposed if not combining(ch)).replace(" ", "")


def find_book(query):
    exact = (query or "").strip().lower().replace(" ", "")
    if not exact:
        return None
    # Accents matter before folding: "Jó" (Job) and "Jo" (John) collide once folded.
    for book in BIBLE_BOOKS:
        if book.name.lower().replace(" ", "") == exact or book.abbreviation.lower() == exact:
            return book
    key = _fold(query)
    for book in BIBLE_BOOKS:
        if _fold(book.name) == key or _fold(book.abbreviation) == key:
            return book
    return None


def find_voice(voice_id):
    key = (voice_id or "").strip().lower()
    for voice in AVAILABLE_VOICES:
        if voice.id.lower() == key:
            return voice
    return None


def filter_books(term):
    if not term:
        return list(BIBLE_BOOKS)
    key = _fold(term)
    return [book for book in BIBLE_BOOKS if key in _fold(book.name)]


def group_by_testament(books):
    return {
        Testament.OLD: [b for b in books if b.testament is Testament.OLD],
        Testament.NEW: [b for b in books if b.testament is Testament.NEW],
    }


def step_chapter(book, chapter, delta):
    """
    Move `delta` chapters from (book, chapter), crossing into neighbouring
    books. Returns None past Genesis 1 or Revelation 22.
    """
    new_chapter = chapter + delta
    if 1 <= new_chapter <= book.chapters:
        return book, new_chapter

    index = BIBLE_BOOKS.index(book)
    if new_chapter > book.chapters:
        if index >= len(BIBLE_BOOKS) - 1:
            return None
        return BIBLE_BOOKS[index + 1], 1
    if index <= 0:
        return None
    previous = BIBLE_BOOKS[index - 1]
    return previous, previous.chapters
