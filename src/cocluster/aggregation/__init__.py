"""Global cluster statistics."""

from .statistics import ClusterStatisticsAggregator

__all__ = ['ClusterStatisticsAggregator']
