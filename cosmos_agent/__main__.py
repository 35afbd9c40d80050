from cosmos_agent.cli import main

main()
