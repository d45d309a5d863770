import re

WALL_PROMPT = (
    "Edit the provided image by replacing the color of the walls with this specific color: "
    "{color}. Keep the rest of the image completely unchanged. The walls should be smooth "
    "and realistic. The walls should have the texture of a wallpaint. The walls should be "
    "in the same shape as the original image. Only change the color of the walls. Keep the "
    "lighting and other elements of the image unchanged. The image should be ultrarealistic "
    "photograph, matching the style of the provided image."
)

# 색상 선택기용 페인트 팔레트
PAINT_COLORS = [
    {"name": "Arctic White", "hex": "#F8F8F8"},
    {"name": "Eggshell", "hex": "#F0EAD6"},
    {"name": "Cream", "hex": "#FFFDD0"},
    {"name": "Beige", "hex": "#F5F5DC"},
    {"name": "Light Gray", "hex": "#D3D3D3"},
    {"name": "Dove Gray", "hex": "#6D6D6D"},
    {"name": "Sky Blue", "hex": "#87CEEB"},
    {"name": "Pale Blue", "hex": "#B0E0E6"},
    {"name": "Mint Green", "hex": "#98FB98"},
    {"name": "Sage", "hex": "#BCB88A"},
    {"name": "Blush Pink", "hex": "#FFE4E1"},
    {"name": "Lavender", "hex": "#E6E6FA"},
    {"name": "Pale Yellow", "hex": "#FFFFE0"},
    {"name": "Terracotta", "hex": "#E2725B"},
    {"name": "Navy Blue", "hex": "#000080"},
    {"name": "Forest Green", "hex": "#228B22"},
    {"name": "Burgundy", "hex": "#800020"},
    {"name": "Charcoal", "hex": "#36454F"},
]

_HEX_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def is_valid_hex(value: str) -> bool:
    return bool(_HEX_RE.match(value))


def color_name(color_hex: str) -> str | None:
    for color in PAINT_COLORS:
        if color["hex"].lower() == color_hex.lower():
            return color["name"]
    return None


def build_wall_prompt(color_hex: str) -> str:
    """팔레트에 있는 색이면 이름도 같이 넣는다. 예: "Sage (#BCB88A)"."""
    name = color_name(color_hex)
    color = f"{name} ({color_hex.upper()})" if name else color_hex.upper()
    return WALL_PROMPT.format(color=color)
