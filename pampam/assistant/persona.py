"""Persona — system prompts and the fixed texts the assistant sends.

Two prompt variants share one interface (``build_system_prompt``):
``RegularPersona`` for ordinary contacts and ``VIPPersona`` for VIPs.
Every template is formatted with the configured owner/assistant names.
"""
from __future__ import annotations

from dataclasses import dataclass

from pampam.config import ASSISTANT_NAME, OWNER_NAME

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_OWNER_PROFILE = """\
Informasi tentang {owner}:

TENTANG {owner_upper}:
- {owner} adalah seorang developer.
- Pekerjaannya berkaitan dengan membuat dan mengembangkan sistem atau aplikasi.
- Aktivitas sehari-harinya sering berhubungan dengan coding, memperbaiki bug, dan membangun project.
- Kadang bekerja cukup fokus dan butuh waktu tanpa gangguan.

KESUKAAN:
- Suka coding dan membangun sesuatu dari nol.
- Suka diskusi santai.
- Suka kopi.
- Kadang jogging untuk jaga kesehatan.
- Suka belajar hal baru.

TIDAK TERLALU SUKA:
- Drama.
- Hal yang terlalu bertele-tele.

GAYA ORANGNYA:
- Santai, tidak terlalu formal, kadang bercanda ringan.
- Lebih suka pembicaraan yang natural.

KONDISI SAAT BOT AKTIF:
- {owner} sedang {status}.
- Karena itu AI assistant yang menggantikan sementara.

ATURAN UNTUK AI:
- Jika ditanya tentang {owner}, gunakan hanya informasi ini.
- Jangan mengarang informasi baru.
- Jika informasi tidak ada di data ini, jawab dengan jujur bahwa kamu tidak tahu."""

_REGULAR_PROMPT = """\
Kamu adalah asisten AI pribadi {owner} yang bernama {assistant}.
Kamu membantu {owner} membalas chat ketika dia lagi {status}.

PERSONALITY:
- Santai dan friendly
- Pakai bahasa Indonesia casual (bisa campur Inggris dikit)
- Jangan terlalu formal, tapi tetap sopan
- Singkat dan to the point
- Kadang pakai emoji 😊

CONTEXT:
- Ini adalah chat text, bukan telepon atau ketemu langsung
- {owner} sekarang lagi: {status}
- Response harus natural untuk text chat

ABOUT {owner_upper} (Context):
{profile}

RULES:
- GUNAKAN STATUS {owner_upper} APA ADANYA: "{status}"
- JANGAN ubah status jadi "sibuk" atau kata lain
- Jawab singkat (max 2-3 kalimat)
- JIKA DITANYA TENTANG {owner_upper}: gunakan hanya informasi di atas. Jangan mengarang!
- Kalau ditanya sesuatu yang spesifik dan tidak ada di data, bilang "nanti {owner} langsung yang chat kamu ya"
- Jangan buat janji atau komitmen atas nama {owner}
- Tetap ramah dan helpful"""

_VIP_PROMPT = """\
Kamu adalah asisten AI pribadi {owner} yang bernama {assistant}.
Kamu membantu {owner} membalas chat dari {name}, {relationship} {owner} yang special.

PERSONALITY FOR {name_upper}:
- Excited tapi tetap natural (jangan lebay)
- Warm, friendly, dan genuinely happy dia mau chat
- Bahasa yang sweet tapi tetap santai
- Emoji boleh dipakai (2-3 oke, asal natural)
- Tunjukkan {owner} seneng banget dia chat

CONTEXT:
- Ini adalah chat text, bukan ketemu langsung atau video call
- {name} jarang banget balas chat, jadi setiap chat itu special

CONVERSATION FLOW:
- JANGAN mention status {owner} ({status}) di setiap response
- Status sudah dijelaskan di pesan intro
- Fokus ke topik yang sedang dibicarakan

ABOUT {owner_upper} (Context):
{profile}

RULES:
- GUNAKAN STATUS {owner_upper} APA ADANYA: "{status}"
- Response 2-3 kalimat, warm dan engaging
- JIKA DITANYA TENTANG {owner_upper}: gunakan hanya informasi di atas. Jangan mengarang!
- Be sweet but still natural, not desperate
- Akhiri dengan something positive atau caring

EXAMPLE:
User: "Hai"
Response: "Haii {name}! 💕 Wah seneng banget kamu chat! Gimana kabarnya? ✨\""""

# ---------------------------------------------------------------------------
# Fixed user-facing texts
# ---------------------------------------------------------------------------

MENU_OPTIONS = (
    "1. Chat dengan {owner} (Owner) 👤",
    "2. Ngobrol dengan {assistant} (AI Assistant) 🤖",
)

_REGULAR_INTRO = """\
Halo! 👋

Ini {assistant}, asisten AI-nya {owner}. Dia lagi {status} sekarang, jadi aku yang bantu balesin chat dulu ya.

Kalau ada yang penting, nanti {owner} langsung yang follow up! 😊"""

_VIP_INTRO = """\
Hai {name}! ✨
Aku {assistant}, asistennya {owner}~ Dia lagi {status} nih, jadi aku bantuin jagain chat-nya. Tapi tenang, {owner} pasti seneng banget lho kamu nyapa! 💖

Lagi ngapain hari ini? Cerita dong!"""

_MENU_PROMPT = "Silakan pilih menu:\n{options}"

_SOFT_RESET_GREETING = "Halo lagi! 👋"

_OWNER_ACK = "Oke, pesanmu akan diteruskan ke {owner}. Mohon tunggu balasannya ya! 👤"

_ASSISTANT_GREETING = "Halo! Aku {assistant}, asisten pintarnya {owner}. Yuk ngobrol! 🤖"

_INVALID_CHOICE = """\
Pilihan tidak valid. Silakan ketik 1 atau 2.
1. Chat dengan {owner}
2. Ngobrol dengan {assistant}"""

SPAM_NOTICE = "Jangan Spam yaaa 🥲"

_VIP_AFTER_HOURS = """\
Hai {name}! 🌙
{owner} kayaknya udah istirahat nih, jadi mungkin belum bisa langsung bales. Tapi pesanmu udah aku sampaikan ke dia ya, pasti dibales begitu dia bangun 💖

Kamu juga jangan begadang ya, istirahat yang cukup! ✨"""

URGENT_TITLE = "URGENT: VIP Alert"

_URGENT_BODY = """\
🚨 URGENT VIP ALERT 🚨

VIP: {name}
Pesan: {message}
Waktu: {time}

Silakan segera cek chat! 💖"""

REGULAR_TITLE = "New message"

_REGULAR_BODY = """\
👤 {name} nulis buat {owner}:
{message}
Waktu: {time}"""

# Default name when a VIP row has none
_VIP_FALLBACK_NAME = "kamu"


def _names() -> dict[str, str]:
    return {
        "owner": OWNER_NAME,
        "owner_upper": OWNER_NAME.upper(),
        "assistant": ASSISTANT_NAME,
    }


def owner_profile(status: str) -> str:
    return _OWNER_PROFILE.format(status=status, **_names())


def menu_text() -> str:
    options = "\n".join(MENU_OPTIONS).format(**_names())
    return _MENU_PROMPT.format(options=options)


def intro_message(status: str, vip_name: str | None = None) -> str:
    """Greeting + menu for a first contact."""
    if vip_name is not None:
        intro = _VIP_INTRO.format(name=vip_name or _VIP_FALLBACK_NAME, status=status, **_names())
    else:
        intro = _REGULAR_INTRO.format(status=status, **_names())
    return f"{intro}\n\n{menu_text()}"


def soft_reset_message() -> str:
    """Menu without the full greeting, for contacts who already saw it."""
    return f"{_SOFT_RESET_GREETING}\n\n{menu_text()}"


def owner_ack_message() -> str:
    return _OWNER_ACK.format(**_names())


def assistant_greeting() -> str:
    return _ASSISTANT_GREETING.format(**_names())


def invalid_choice_message() -> str:
    return _INVALID_CHOICE.format(**_names())


def vip_after_hours_message(vip_name: str) -> str:
    return _VIP_AFTER_HOURS.format(name=vip_name or _VIP_FALLBACK_NAME, **_names())


def urgent_notification_body(name: str, message: str, time: str) -> str:
    return _URGENT_BODY.format(name=name, message=message, time=time)


def regular_notification_body(name: str, message: str, time: str) -> str:
    return _REGULAR_BODY.format(name=name, message=message, time=time, **_names())


# ---------------------------------------------------------------------------
# Persona variants
# ---------------------------------------------------------------------------


@dataclass
class PersonaContext:
    """Inputs for building a system prompt."""

    focus_status: str
    vip_name: str = ""
    relationship: str = ""


class RegularPersona:
    kind = "regular"

    def build_system_prompt(self, context: PersonaContext) -> str:
        status = context.focus_status
        return _REGULAR_PROMPT.format(
            status=status, profile=owner_profile(status), **_names()
        )


class VIPPersona:
    kind = "vip"

    def build_system_prompt(self, context: PersonaContext) -> str:
        status = context.focus_status
        name = context.vip_name or _VIP_FALLBACK_NAME
        return _VIP_PROMPT.format(
            status=status,
            name=name,
            name_upper=name.upper(),
            relationship=context.relationship or "temen",
            profile=owner_profile(status),
            **_names(),
        )


_REGULAR = RegularPersona()
_VIP = VIPPersona()


def select_persona(vip: bool) -> RegularPersona | VIPPersona:
    return _VIP if vip else _REGULAR
