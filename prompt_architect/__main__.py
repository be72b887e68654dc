from prompt_architect.app import main

main()
