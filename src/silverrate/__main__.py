from silverrate.app import main

main()
