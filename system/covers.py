import base64
import io
from pathlib import Path

from PIL import Image

DEFAULT_COVER_PROMPT = """Design de capa de Bíblia Sagrada ultra-moderno e minimalista.
Estilo: Clean, sofisticado, contemporâneo.
Material: Acabamento fosco (matte) premium, textura suave de papel de arte ou couro liso moderno.
Cores: Paleta minimalista (Branco Off-White, Cinza Carvão ou Azul Meia-Noite) com detalhes sutis em cobre ou ouro rosé.
Tipografia: Fonte Sans-Serif elegante, minimalista e centralizada. Título "Bíblia Sagrada" discreto.
Elementos gráficos: Uso de espaço negativo, linhas geométricas finas, uma cruz estilizada muito simples ou um feixe de luz abstrato.
Atmosfera: Paz, clareza, pureza e modernidade. Sem ornamentos rococó ou excessos."""


def save_cover(image_b64, output_path):
    """Decode a base64 JPEG, check it with Pillow and write it to output_path."""
    raw = base64.b64decode(image_b64)
    with Image.open(io.BytesIO(raw)) as image:
        image.verify()
    with Image.open(io.BytesIO(raw)) as image:
        size = image.size
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_name(f"{target.stem}.part{target.suffix}")
    tmp_path.write_bytes(raw)
    tmp_path.replace(target)
    return size
