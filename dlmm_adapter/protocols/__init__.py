"""
Protocol implementations

- dlmm: bin math, weights, allocation and fees
- aggregator: swap quote providers
"""
