"""
app/jobs package marker.
"""
