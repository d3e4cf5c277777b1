from tormenta_init.launchers.initd import main


main()
