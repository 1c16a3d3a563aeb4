from chipdb.interface.main import main


main()
