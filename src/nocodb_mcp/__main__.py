from nocodb_mcp.cli import main

main()
