# Adherence engine: generation, status classification, statistics and sync
