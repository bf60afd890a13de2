"""
Review Feed — merged, ranked app store reviews served over one HTTP endpoint.
"""
