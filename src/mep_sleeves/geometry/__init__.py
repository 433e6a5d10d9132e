"""Geometry utilities: segment sampling and projection, solid intersection, units.

Box and point transforms live on the models in ``mep_sleeves.models.geometry``.
"""
