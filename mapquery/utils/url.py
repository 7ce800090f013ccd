def wfs_url_from_wms(wms_url: str) -> str:
    """
    Derive the WFS endpoint of a map server from its WMS endpoint.

    Map servers such as GeoServer expose both services side by side, so the
    trailing ``/wms`` path segment is swapped for ``/wfs``. Any other URL is
    returned unchanged.

    Args:
        wms_url: The WMS endpoint, e.g. 'https://maps.example.org/geoserver/wms'

    Returns:
        The WFS endpoint

    Examples:
        >>> wfs_url_from_wms('https://maps.example.org/geoserver/wms')
        'https://maps.example.org/geoserver/wfs'
        >>> wfs_url_from_wms('https://maps.example.org/geoserver/wms/')
        'https://maps.example.org/geoserver/wfs'
    """
    url = wms_url.rstrip("/")
    if url.lower().endswith("/wms"):
        return f"{url[:-4]}/wfs"
    return url

