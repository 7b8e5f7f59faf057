"""
Pure ranking algorithms: competitive scoring, domain matching, sitemap diffing.
"""
