from __future__ import annotations

from urllib.parse import urlencode

from landmark_explorer.models.contracts import LandmarkInfo, MapEmbedResponse

MAPS_EMBED_BASE = "https://maps.google.com/maps"
DEFAULT_ZOOM = 14


def map_embed_url(latitude: float, longitude: float, zoom: int = DEFAULT_ZOOM) -> str:
    """Keyless Google Maps iframe URL centred on the coordinates."""
    query = urlencode(
        {
            "q": f"{latitude},{longitude}",
            "t": "",
            "z": zoom,
            "ie": "UTF8",
            "iwloc": "",
            "output": "embed",
        },
        safe=",",
    )
    return f"{MAPS_EMBED_BASE}?{query}"


def map_embed(landmark: LandmarkInfo) -> MapEmbedResponse:
    return MapEmbedResponse(
        name=landmark.name,
        latitude=landmark.latitude,
        longitude=landmark.longitude,
        embed_url=map_embed_url(landmark.latitude, landmark.longitude),
    )
