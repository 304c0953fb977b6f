"""
Daily tasks, ad watching and the periodic reset.
"""
