"""augur: online return-distribution predictors and trade expected-value core."""

__version__ = "0.1.0"
