"""Built-in catalog definition loaded at process start."""

from __future__ import annotations

from datetime import datetime

from core.catalog.types import LanguageVersion, Song

_SONGS: list[dict] = [
    {
        "id": 1,
        "title": "Naatu Naatu",
        "artist": "Kala Bhairava, Rahul Sipligunj",
        "movie": "RRR",
        "genre": "Folk/Dance",
        "duration": "4:32",
        "release_year": 2021,
        "default_language": "Telugu",
        "poster": "https://example.com/naatu-poster.jpg",
        "versions": [
            {
                "language": "Telugu",
                "file": "naatu_telugu.mp3",
                "lyrics": "పాట వింటే గుండెల్లో నాట్యం",
                "singer": "Kala Bhairava, Rahul Sipligunj",
                "lyricist": "Chandrabose",
                "music_director": "M. M. Keeravani",
            },
            {
                "language": "Hindi",
                "file": "naatu_hindi.mp3",
                "lyrics": "गाना सुनके दिल में नाचे",
                "singer": "Vishal Mishra, Rahul Sipligunj",
                "lyricist": "Varun Grover",
                "music_director": "M. M. Keeravani",
            },
            {
                "language": "Tamil",
                "file": "naatu_tamil.mp3",
                "lyrics": "பாட்டு கேட்டா மனசுல ஆட்டம்",
                "singer": "Anirudh Ravichander",
                "lyricist": "Arivu",
                "music_director": "M. M. Keeravani",
            },
        ],
    },
    {
        "id": 2,
        "title": "Kesariya",
        "artist": "Arijit Singh",
        "movie": "Brahmastra",
        "genre": "Romance",
        "duration": "4:28",
        "release_year": 2022,
        "default_language": "Hindi",
        "poster": "https://example.com/kesariya-poster.jpg",
        "versions": [
            {
                "language": "Hindi",
                "file": "kesariya_hindi.mp3",
                "lyrics": "केसरिया तेरा इश्क़ है पिया",
                "singer": "Arijit Singh",
                "lyricist": "Amitabh Bhattacharya",
                "music_director": "Pritam",
            },
            {
                "language": "Telugu",
                "file": "kesariya_telugu.mp3",
                "lyrics": "కేసరిని నీ ప్రేమ కథ",
                "singer": "Sid Sriram",
                "lyricist": "Krishna Kanth",
                "music_director": "Pritam",
            },
        ],
    },
]


def build_default_catalog(base_url: str, now: datetime) -> list[Song]:
    """
    Materialize the built-in songs.

    Args:
        base_url: Public origin the audio URLs are rooted at
            (e.g. ``http://localhost:3000``).
        now: Timestamp stamped on every song as created/updated time.

    Returns:
        Songs in catalog order, ids as defined above.
    """
    root = base_url.rstrip("/")
    songs: list[Song] = []
    for raw in _SONGS:
        versions = tuple(
            LanguageVersion(
                language=v["language"],
                url=f"{root}/audio/{v['file']}",
                singer=v["singer"],
                lyricist=v["lyricist"],
                music_director=v["music_director"],
                lyrics=v["lyrics"],
            )
            for v in raw["versions"]
        )
        fields = {k: v for k, v in raw.items() if k != "versions"}
        songs.append(Song(**fields, versions=versions, created_at=now, updated_at=now))
    return songs
