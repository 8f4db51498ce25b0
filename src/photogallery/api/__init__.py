"""Photogallery - FastAPI HTTP layer.

Modules
-------
main
    FastAPI application factory, route handlers and the ``main()`` CLI
    entry point.
context
    The :class:`GalleryContext` holding the monitors and image cache the
    routes delegate to.
"""
