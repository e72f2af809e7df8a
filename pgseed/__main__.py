from pgseed.seed import main


main()
