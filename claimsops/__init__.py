"""Claims operations metrics: loaders, single-flight cache, aggregation engines, fusion."""
