from meetrelay.app import main

main()
