"""
Dataset registry: `data/datasets/*/dataset.yaml` describes each mapped area.
"""
