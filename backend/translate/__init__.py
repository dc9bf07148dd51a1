"""
Label translation: the Lingvanex client and the positional overlay merge.
"""
