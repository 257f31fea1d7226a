"""
EllaRises staff and participant website.
"""
