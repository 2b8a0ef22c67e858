from sender_stats.processors.ingest import main

main()
