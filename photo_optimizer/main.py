"""Точка входа в приложение."""
from photo_optimizer.app import PhotoOptimizerApp


def main() -> None:
    """Создаёт и запускает главное окно приложения."""
    app = PhotoOptimizerApp()
    app.mainloop()


if __name__ == "__main__":
    main()
