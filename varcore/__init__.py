"""
variant record reconciliation, decomposition and genotype likelihood subsetting, and the band pass activity
profile used to find active regions
"""
__version__ = '0.1.0'
